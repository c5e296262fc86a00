from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework import generics, status
from django_filters.rest_framework import DjangoFilterBackend

from django.core.cache import caches
from django.db import connection
from django.db.models import Count
from django.http import JsonResponse
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt

from .billing import BillingReconciler, CheckoutService, InvalidEvent, verify_webhook
from .config import PredictorConfig
from .exceptions import BillingError, InvalidRequest, NoSuggestions, PredictionError, Unauthorized
from .filters import PredictionFilter
from .models import PlanModel, Prediction, Subscription, SubscriptionStatus
from .pagination import PredictionHistoryPagination
from .permissions import IsAnalyticsManager
from .pipeline import PredictionPipeline
from .serializers import (
    CheckoutSerializer,
    DomainResultSerializer,
    PlanSerializer,
    PredictionSerializer,
    RecentSearchSerializer,
    SearchRequestSerializer,
    SubscriptionSerializer,
)
from .services import MarketDataService
from .throttles import PredictionThrottle

import logging


logger = logging.getLogger(__name__)

# Failure kind -> HTTP status
ERROR_STATUS = {
    Unauthorized.kind: status.HTTP_403_FORBIDDEN,
    InvalidRequest.kind: status.HTTP_400_BAD_REQUEST,
    PredictionError.kind: status.HTTP_500_INTERNAL_SERVER_ERROR,
}



#===================================
# Health check
#====================================
def health_check(request):
    database_status = "ok"
    cache_status = "up"

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except Exception:
        logger.exception("Health check: database unreachable")
        database_status = "unhealthy"

    try:
        caches['default'].get("health_check_key")
    except Exception:
        logger.exception("Health check: cache unreachable")
        cache_status = "down"

    status_code = 200 if database_status == "ok" and cache_status == "up" else 503

    return JsonResponse({
        "database": database_status,
        "cache": cache_status,
        "timestamp": timezone.now().isoformat()
    }, status=status_code)



#===================================
# Domain predictions
#====================================
class PredictDomainsView(APIView):
    """
    Runs the prediction pipeline for the logged-in user.

    Body: {"niche": "...", "timeframe_months": 3, "budget": "100.00", "keywords": "ai,cloud"}
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [PredictionThrottle]

    def build_pipeline(self, config):
        return PredictionPipeline.from_config(config)

    def post(self, request):
        serializer = SearchRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        config = PredictorConfig.from_settings()
        search = serializer.to_search_request(default_timeframe=config.default_timeframe_months)

        outcome = self.build_pipeline(config).run(request.user.id, search)

        if outcome.ok:
            return Response({
                "domains": DomainResultSerializer(outcome.domains, many=True).data,
                "prediction_id": outcome.record_id,
            }, status=status.HTTP_200_OK)

        if outcome.kind == NoSuggestions.kind:
            return Response({
                "domains": [],
                "prediction_id": None,
                "detail": outcome.message,
            }, status=status.HTTP_200_OK)

        body = {"detail": outcome.message, "code": outcome.kind}
        if isinstance(outcome.error, InvalidRequest) and outcome.error.field:
            body["field"] = outcome.error.field

        return Response(body, status=ERROR_STATUS.get(outcome.kind, status.HTTP_502_BAD_GATEWAY))



class PredictionHistoryView(generics.ListAPIView):
    """
    The caller's past runs, newest first.
    Filters: niche (icontains), created_at_after, created_at_before
    """
    serializer_class = PredictionSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = PredictionHistoryPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = PredictionFilter

    def get_queryset(self):
        return Prediction.objects.filter(user=self.request.user).order_by("-created_at", "-id")



#===================================
# Billing
#====================================
@method_decorator(csrf_exempt, name='dispatch')
class StripeWebhookView(APIView):
    """
    Receives Stripe events. Authenticity comes from the Stripe-Signature
    header, not from a session.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        payload = request.body
        signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")

        config = PredictorConfig.from_settings()
        result = verify_webhook(payload, signature, config.stripe_webhook_secret)
        if isinstance(result, InvalidEvent):
            logger.warning(f"Rejected Stripe webhook: {result.reason}")
            return Response({"detail": result.reason}, status=status.HTTP_400_BAD_REQUEST)

        BillingReconciler().apply(result.event)
        return Response({"received": True}, status=status.HTTP_200_OK)



class SubscriptionStatusView(APIView):
    """
    GET: the caller's subscription state.
    POST: start a subscription. Body: {"price_id": "price_monthly", "payment_method_id": "pm_..."}
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        subscription, _ = Subscription.objects.get_or_create(user=request.user)
        return Response(SubscriptionSerializer(subscription).data)

    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        config = PredictorConfig.from_settings()
        try:
            result = CheckoutService(config.stripe_secret_key).start(
                request.user,
                serializer.validated_data["price_id"],
                serializer.validated_data["payment_method_id"],
            )
        except BillingError as e:
            logger.error(f"Checkout failed: {e.detail}")
            return Response(
                {"detail": e.public_message, "code": e.kind},
                status=status.HTTP_502_BAD_GATEWAY
            )

        return Response({
            "subscription_id": result.subscription_id,
            "status": result.status,
            "client_secret": result.client_secret,
        }, status=status.HTTP_201_CREATED)



class PlanListView(generics.ListAPIView):
    queryset = PlanModel.objects.filter(is_active=True)
    serializer_class = PlanSerializer
    permission_classes = [AllowAny]
    pagination_class = None



#===================================
# Search analytics
#====================================
class PredictionStatsView(APIView):
    permission_classes = [IsAnalyticsManager]

    def get(self, request):
        total_searches = Prediction.objects.count()
        unique_users = Prediction.objects.order_by().values("user").distinct().count()
        avg_per_user = round(total_searches / unique_users, 1) if unique_users else 0

        # Niche counts, case-insensitive
        niche_counts = {}
        for params in Prediction.objects.values_list("search_params", flat=True):
            niche = ((params or {}).get("niche") or "").strip().lower()
            if niche:
                niche_counts[niche] = niche_counts.get(niche, 0) + 1
        top_niches = sorted(niche_counts.items(), key=lambda item: (-item[1], item[0]))[:10]

        recent = Prediction.objects.select_related("user").order_by("-created_at")[:10]

        active_subscribers = (
            Subscription.objects.filter(status=SubscriptionStatus.ACTIVE)
            .aggregate(total=Count("id"))["total"]
        )

        return Response({
            "total_searches": total_searches,
            "unique_users": unique_users,
            "avg_searches_per_user": avg_per_user,
            "top_niches": [{"niche": niche, "count": count} for niche, count in top_niches],
            "recent_searches": RecentSearchSerializer(recent, many=True).data,
            "active_subscribers": active_subscribers,
        })



#===================================
# Market data
#====================================
class MarketTrendsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(MarketDataService().snapshot())
