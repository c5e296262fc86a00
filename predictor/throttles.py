from rest_framework.throttling import UserRateThrottle


class PredictionThrottle(UserRateThrottle):
    """Caps pipeline runs per user; each run costs an LLM call."""
    scope = 'predictions'

    def allow_request(self, request, view):
        if request.method != 'POST':
            return True  # Only prediction runs are throttled
        return super().allow_request(request, view)
