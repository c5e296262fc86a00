from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator



# ============================================
# Plan model
# ============================================
# Billing interval choices
class BillingInterval(models.TextChoices):
    MONTH = 'month', 'Monthly'
    YEAR = 'year', 'Yearly'


class PlanModel(models.Model):
    price_id = models.CharField(
        max_length=100,
        unique=True,
        help_text="Stripe price id, e.g. price_monthly"
    )
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    interval = models.CharField(
        max_length=10,
        choices=BillingInterval.choices,
        default=BillingInterval.MONTH,
    )
    price = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)])
    features = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['price']

    def __str__(self):
        return f"{self.name} ({self.price_id})"




# ============================================
# Subscription model - one per user, driven by Stripe webhooks
# ============================================
class SubscriptionStatus(models.TextChoices):
    INACTIVE = 'inactive', 'Inactive'
    ACTIVE = 'active', 'Active'
    PAST_DUE = 'past_due', 'Past due'
    CANCELLED = 'cancelled', 'Cancelled'


class Subscription(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='subscription'
    )
    status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.INACTIVE,
        db_index=True
    )
    # Customer id <-> user mapping used to route webhook events
    stripe_customer_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    stripe_subscription_id = models.CharField(max_length=255, blank=True, default='')
    price_id = models.CharField(max_length=100, blank=True, default='')
    current_period_end = models.DateTimeField(null=True, blank=True)
    last_payment_date = models.DateTimeField(null=True, blank=True)
    last_payment_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)


    def is_active(self):
        return self.status == SubscriptionStatus.ACTIVE

    def __str__(self):
        return f"{self.user} | Status: {self.status}"




# ============================================
# Prediction model - append-only log of pipeline runs
# ============================================
class Prediction(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='predictions'
    )
    search_params = models.JSONField()
    domains = models.JSONField(default=list)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='prediction_user_created_idx'),
        ]

    @property
    def niche(self):
        return (self.search_params or {}).get('niche', '')

    def __str__(self):
        return f"User: {self.user} | Niche: {self.niche} | Domains: {len(self.domains or [])}"
