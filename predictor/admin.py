# admin.py
from django.contrib import admin, messages
from django.shortcuts import redirect
from django.urls import path
from .models import PlanModel, Prediction, Subscription, SubscriptionStatus
from .tasks import refresh_market_data


@admin.action(description='Mark selected subscriptions inactive')
def deactivate_subscriptions(modeladmin, request, queryset):
    updated = queryset.update(status=SubscriptionStatus.INACTIVE)
    modeladmin.message_user(request, f"{updated} subscription(s) marked inactive.")



@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ('user', 'status', 'price_id', 'current_period_end', 'last_payment_date', 'last_payment_amount')
    list_filter = ('status', 'price_id')
    # stripe_customer_id is set at checkout; editable here to repair a mapping
    search_fields = ('user__username', 'user__email', 'stripe_customer_id')
    readonly_fields = ('created_at', 'updated_at')
    actions = [deactivate_subscriptions]


@admin.register(Prediction)
class PredictionAdmin(admin.ModelAdmin):
    list_display = ('user', 'niche', 'domain_count', 'created_at')
    list_filter = ('created_at',)
    search_fields = ('user__username',)
    readonly_fields = ('user', 'search_params', 'domains', 'created_at')
    # Adds a "Refresh market data" button above the list
    change_list_template = 'admin/predictor/prediction/change_list.html'

    @admin.display(description='Domains')
    def domain_count(self, obj):
        return len(obj.domains or [])

    def get_urls(self):
        urls = [
            path(
                'refresh-market-data/',
                self.admin_site.admin_view(self.refresh_market_data_view),
                name='predictor_refresh_market_data',
            ),
        ]
        return urls + super().get_urls()

    def refresh_market_data_view(self, request):
        if request.method != 'POST':
            self.message_user(request, "Use the Refresh market data button.", level=messages.WARNING)
        else:
            refresh_market_data.delay()
            self.message_user(request, "Market data refresh queued.")
        return redirect('admin:predictor_prediction_changelist')


@admin.register(PlanModel)
class PlanModelAdmin(admin.ModelAdmin):
    list_display = ('name', 'price_id', 'interval', 'price', 'is_active')
    list_filter = ('interval', 'is_active')
    search_fields = ('name', 'price_id')
