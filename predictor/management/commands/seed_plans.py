from decimal import Decimal

from django.core.management.base import BaseCommand

from predictor.models import BillingInterval, PlanModel


DEFAULT_PLANS = [
    {
        "price_id": "price_monthly",
        "name": "Monthly",
        "description": "Full access, billed every month.",
        "interval": BillingInterval.MONTH,
        "price": Decimal("9.99"),
        "features": [
            "Unlimited domain predictions",
            "Availability and price checks",
            "Market trend insights",
        ],
    },
    {
        "price_id": "price_yearly",
        "name": "Yearly",
        "description": "Full access, billed once a year. Two months free.",
        "interval": BillingInterval.YEAR,
        "price": Decimal("99.99"),
        "features": [
            "Unlimited domain predictions",
            "Availability and price checks",
            "Market trend insights",
            "Priority support",
        ],
    },
]


class Command(BaseCommand):
    help = "Create or update the subscription plans offered on /api/plans"
    #usage: python manage.py seed_plans

    def handle(self, *args, **kwargs):
        for plan in DEFAULT_PLANS:
            defaults = {key: value for key, value in plan.items() if key != "price_id"}
            _, created = PlanModel.objects.update_or_create(price_id=plan["price_id"], defaults=defaults)
            action = "Created" if created else "Updated"
            self.stdout.write(f"{action} plan {plan['price_id']}")

        self.stdout.write(self.style.SUCCESS(f"Seeded {len(DEFAULT_PLANS)} plans"))
