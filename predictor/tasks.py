from celery import shared_task

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail

from .services import MarketDataService

import logging


logger = logging.getLogger(__name__)

PAYMENT_FAILED_SUBJECT = "Payment Failed for {site_name} Subscription"

PAYMENT_FAILED_BODY = (
    "Dear {name},\n\n"
    "We were unable to process your payment for your {site_name} subscription. "
    "Please update your payment information to continue using our service.\n\n"
    "Thank you,\n"
    "{site_name}"
)


# --- Billing notifications ---
@shared_task(bind=True, name="send_payment_failed_email", max_retries=3, ignore_result=True)
def send_payment_failed_email(self, user_id):
    """
    Tells a user their latest invoice could not be charged.
    Queued by the billing reconciler on invoice.payment_failed.
    """
    User = get_user_model()
    user = User.objects.filter(pk=user_id).first()

    if user is None or not user.email:
        logger.warning(f"No e-mail address for user {user_id}; payment-failed notice skipped")
        return

    site_name = settings.SITE_NAME
    name = user.get_full_name() or user.get_username()

    try:
        send_mail(
            subject=PAYMENT_FAILED_SUBJECT.format(site_name=site_name),
            message=PAYMENT_FAILED_BODY.format(name=name, site_name=site_name),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[user.email],
        )
    except Exception as e:
        logger.exception(f"Payment-failed e-mail to user {user_id} failed")
        raise self.retry(exc=e, countdown=300)

    logger.info(f"Payment-failed e-mail sent to user {user_id}")



# --- Market data cache ---
@shared_task(bind=True, name="refresh_market_data", time_limit=600, ignore_result=True)
def refresh_market_data(self):
    """Re-warms the 24h market data caches."""
    try:
        snapshot = MarketDataService().refresh()
    except Exception as e:
        logger.exception("Market data refresh failed")
        raise self.retry(exc=e, countdown=600)

    logger.info(f"Market data refreshed: {', '.join(snapshot)}")
