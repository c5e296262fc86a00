"""
Failure taxonomy for a single prediction or checkout request.

Each class carries a machine-readable `kind` and a `user_message` that is safe
to show to the client. The technical detail (and the upstream cause, when
there is one) goes to the logs only.
"""


class PredictionError(Exception):
    kind = "prediction_error"
    user_message = "Something went wrong. Please try again."

    def __init__(self, detail=None, cause=None):
        self.detail = detail or self.user_message
        self.cause = cause
        super().__init__(self.detail)

    @property
    def public_message(self):
        return self.user_message


class Unauthorized(PredictionError):
    kind = "unauthorized"
    user_message = "You need an active subscription to use this feature."


class InvalidRequest(PredictionError):
    kind = "invalid_request"
    user_message = "Please check your search criteria."

    def __init__(self, detail=None, field=None, cause=None):
        self.field = field
        super().__init__(detail, cause)

    @property
    def public_message(self):
        # Field errors carry our own wording
        return self.detail


class UpstreamError(PredictionError):
    kind = "upstream_error"
    user_message = "The suggestion service is unavailable right now. Please try again in a moment."


class NoSuggestions(PredictionError):
    kind = "no_suggestions"
    user_message = "No domain suggestions could be generated. Please try different criteria."


class StorageError(PredictionError):
    kind = "storage_error"
    user_message = "Your results could not be saved."


class BillingError(PredictionError):
    kind = "billing_error"
    user_message = "Your subscription could not be started. Please try again."
