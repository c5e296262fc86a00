import django_filters.rest_framework as filters

from .models import Prediction



class PredictionFilter(filters.FilterSet):
    niche = filters.CharFilter(field_name="search_params__niche", lookup_expr="icontains")

    # created_at range
    created_at_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_at_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Prediction
        fields = [
            "niche",
            "created_at_after",
            "created_at_before",
        ]
