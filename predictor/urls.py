from django.urls import path
from . import views




urlpatterns = [
    # Prediction pipeline
    path('predictions', views.PredictDomainsView.as_view(), name='predict-domains'),
    path('predictions/history', views.PredictionHistoryView.as_view(), name='prediction-history'),

    # Billing
    path('billing/webhook', views.StripeWebhookView.as_view(), name='stripe-webhook'),
    path('subscription', views.SubscriptionStatusView.as_view(), name='subscription-status'),
    path('plans', views.PlanListView.as_view(), name='plan-list'),

    # Analytics and market data
    path('admin/stats', views.PredictionStatsView.as_view(), name='prediction-stats'),
    path('market/trends', views.MarketTrendsView.as_view(), name='market-trends'),

    path('health/', views.health_check, name='health-check'),
]
