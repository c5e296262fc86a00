from decimal import Decimal

from rest_framework import serializers

from .models import PlanModel, Prediction, Subscription
from .records import SearchRequest



# ============================================
# Search request (input to the prediction pipeline)
# ============================================
class SearchRequestSerializer(serializers.Serializer):
    # Blank niches reach the pipeline, which reports them with field="niche"
    niche = serializers.CharField(max_length=200, allow_blank=True, trim_whitespace=False)
    timeframe_months = serializers.IntegerField(required=False, min_value=1, max_value=120)
    budget = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=Decimal("0")
    )
    keywords = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

    def to_search_request(self, default_timeframe=3):
        data = self.validated_data
        return SearchRequest(
            niche=data["niche"],
            timeframe_months=data.get("timeframe_months") or default_timeframe,
            budget=data.get("budget"),
            keywords=data.get("keywords") or "",
        )



class DomainResultSerializer(serializers.Serializer):
    domain = serializers.CharField()
    available = serializers.BooleanField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    potential_value = serializers.DecimalField(max_digits=12, decimal_places=2)
    registrar_link = serializers.URLField()



# ============================================
# Prediction history
# ============================================
class PredictionSerializer(serializers.ModelSerializer):
    niche = serializers.CharField(read_only=True)

    class Meta:
        model = Prediction
        fields = ["id", "niche", "search_params", "domains", "created_at"]
        read_only_fields = fields


class RecentSearchSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)
    niche = serializers.CharField(read_only=True)
    domain_count = serializers.SerializerMethodField()

    class Meta:
        model = Prediction
        fields = ["id", "username", "niche", "domain_count", "created_at"]

    def get_domain_count(self, obj):
        return len(obj.domains or [])



# ============================================
# Billing
# ============================================
class PlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlanModel
        fields = ["price_id", "name", "description", "interval", "price", "features"]


class CheckoutSerializer(serializers.Serializer):
    price_id = serializers.CharField(max_length=100)
    payment_method_id = serializers.CharField(max_length=255)

    def validate_price_id(self, value):
        if not PlanModel.objects.filter(price_id=value, is_active=True).exists():
            raise serializers.ValidationError("Unknown plan.")
        return value


class SubscriptionSerializer(serializers.ModelSerializer):
    is_active = serializers.SerializerMethodField()

    class Meta:
        model = Subscription
        fields = [
            "status",
            "is_active",
            "price_id",
            "current_period_end",
            "last_payment_date",
            "last_payment_amount",
        ]

    def get_is_active(self, obj):
        return obj.is_active()
