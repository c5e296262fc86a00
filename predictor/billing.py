"""
Stripe checkout, webhook verification and the subscription state machine
the webhooks drive.

Checkout is where a local user gets linked to a Stripe customer: the
customer id is saved on the user's Subscription row before the Stripe
subscription is created, so the webhooks that follow can be routed back.

Only events that passed `verify_webhook` are handed to
`BillingReconciler.apply`; everything the reconciler does not recognise
(unknown customer, unknown event type, invoice with no subscription) is a
no-op.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from typing import Optional

import stripe
from django.utils import timezone

from .exceptions import BillingError
from .models import Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)

# Provider status -> local status; anything unlisted maps to inactive
STATUS_MAP = {
    'active': SubscriptionStatus.ACTIVE,
    'trialing': SubscriptionStatus.ACTIVE,
    'past_due': SubscriptionStatus.PAST_DUE,
    'unpaid': SubscriptionStatus.PAST_DUE,
    'canceled': SubscriptionStatus.CANCELLED,
    'cancelled': SubscriptionStatus.CANCELLED,
    'incomplete_expired': SubscriptionStatus.CANCELLED,
}


def map_provider_status(status):
    return STATUS_MAP.get(status, SubscriptionStatus.INACTIVE)


@dataclass(frozen=True)
class VerifiedEvent:
    event: dict

    @property
    def type(self):
        return self.event.get('type', '')


@dataclass(frozen=True)
class InvalidEvent:
    reason: str


def verify_webhook(payload, signature, secret):
    """
    Checks the Stripe-Signature header against the endpoint secret.

    Returns VerifiedEvent with the decoded event on success, InvalidEvent
    otherwise. Never raises.
    """
    if not secret:
        return InvalidEvent("Webhook secret is not configured")
    if not signature:
        return InvalidEvent("Missing signature")

    if isinstance(payload, bytes):
        payload = payload.decode('utf-8', errors='replace')

    try:
        stripe.Webhook.construct_event(payload, signature, secret)
        event = json.loads(payload)
    except ValueError:
        return InvalidEvent("Invalid payload")
    except stripe.SignatureVerificationError:
        return InvalidEvent("Invalid signature")

    if not isinstance(event, dict):
        return InvalidEvent("Invalid payload")
    return VerifiedEvent(event)


def _default_notify(user_id):
    from .tasks import send_payment_failed_email
    send_payment_failed_email.delay(user_id)


def _from_epoch(value):
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)


def _first_item(obj):
    items = (obj.get('items') or {}).get('data') or []
    return items[0] if items else {}


def _invoice_subscription_id(invoice):
    subscription_id = invoice.get('subscription')
    if subscription_id:
        return subscription_id
    # Newer API versions nest it under parent.subscription_details
    parent = invoice.get('parent') or {}
    return (parent.get('subscription_details') or {}).get('subscription')



class BillingReconciler:

    def __init__(self, notify=None):
        self.notify = notify or _default_notify
        self.handlers = {
            'subscription.created': self._subscription_changed,
            'subscription.updated': self._subscription_changed,
            'subscription.deleted': self._subscription_deleted,
            'invoice.payment_succeeded': self._payment_succeeded,
            'invoice.payment_failed': self._payment_failed,
        }

    @staticmethod
    def normalize_type(event_type):
        prefix = 'customer.'
        return event_type[len(prefix):] if event_type.startswith(prefix) else event_type

    def apply(self, event):
        """Applies one verified event. Returns the updated Subscription, or None for a no-op."""
        event_type = self.normalize_type(event.get('type') or '')
        handler = self.handlers.get(event_type)
        if handler is None:
            logger.info(f"[BillingReconciler] Ignoring event type {event.get('type')}")
            return None

        obj = (event.get('data') or {}).get('object') or {}
        subscription = self._resolve(obj.get('customer'))
        if subscription is None:
            logger.info(f"[BillingReconciler] {event_type}: unknown customer {obj.get('customer')}")
            return None

        return handler(subscription, obj)

    def _resolve(self, customer_id):
        if not customer_id:
            return None
        return Subscription.objects.filter(stripe_customer_id=customer_id).first()

    def _subscription_changed(self, subscription, obj):
        subscription.status = map_provider_status(obj.get('status'))
        subscription.stripe_subscription_id = obj.get('id') or subscription.stripe_subscription_id

        item = _first_item(obj)
        price_id = (item.get('price') or {}).get('id')
        if price_id:
            subscription.price_id = price_id

        period_end = obj.get('current_period_end') or item.get('current_period_end')
        if period_end:
            subscription.current_period_end = _from_epoch(period_end)

        subscription.save()
        logger.info(f"[BillingReconciler] User {subscription.user_id} subscription -> {subscription.status}")
        return subscription

    def _subscription_deleted(self, subscription, obj):
        subscription.status = SubscriptionStatus.CANCELLED
        subscription.save(update_fields=['status', 'updated_at'])
        logger.info(f"[BillingReconciler] User {subscription.user_id} subscription cancelled")
        return subscription

    def _payment_succeeded(self, subscription, invoice):
        if not _invoice_subscription_id(invoice):
            return None

        subscription.status = SubscriptionStatus.ACTIVE
        subscription.last_payment_date = timezone.now()
        subscription.last_payment_amount = Decimal(int(invoice.get('amount_paid') or 0)) / 100
        subscription.save(update_fields=['status', 'last_payment_date', 'last_payment_amount', 'updated_at'])
        logger.info(f"[BillingReconciler] User {subscription.user_id} paid {subscription.last_payment_amount}")
        return subscription

    def _payment_failed(self, subscription, invoice):
        if not _invoice_subscription_id(invoice):
            return None

        subscription.status = SubscriptionStatus.PAST_DUE
        subscription.save(update_fields=['status', 'updated_at'])
        logger.warning(f"[BillingReconciler] Payment failed for user {subscription.user_id}")

        try:
            self.notify(subscription.user_id)
        except Exception:
            # Status is already saved; only the e-mail is lost
            logger.exception(f"[BillingReconciler] Could not queue payment-failed email for user {subscription.user_id}")
        return subscription



# ============================================
# Checkout
# ============================================
@dataclass(frozen=True)
class CheckoutResult:
    subscription_id: str
    status: str
    client_secret: Optional[str] = None


def _client_secret(stripe_subscription):
    # Only present when latest_invoice.payment_intent was expanded
    invoice = getattr(stripe_subscription, 'latest_invoice', None)
    payment_intent = getattr(invoice, 'payment_intent', None)
    return getattr(payment_intent, 'client_secret', None)


class CheckoutService:
    """
    Starts a Stripe subscription for a local user.

    The first checkout creates the Stripe customer and stores its id on the
    user's Subscription; later checkouts reuse that customer and make the new
    payment method its default.
    """

    def __init__(self, api_key):
        self.api_key = api_key

    def get_or_create_customer(self, user, subscription, payment_method_id):
        invoice_settings = {'default_payment_method': payment_method_id}

        if subscription.stripe_customer_id:
            stripe.PaymentMethod.attach(
                payment_method_id,
                customer=subscription.stripe_customer_id,
                api_key=self.api_key,
            )
            stripe.Customer.modify(
                subscription.stripe_customer_id,
                invoice_settings=invoice_settings,
                api_key=self.api_key,
            )
            return subscription.stripe_customer_id

        customer = stripe.Customer.create(
            email=user.email,
            name=user.get_full_name() or user.get_username(),
            payment_method=payment_method_id,
            invoice_settings=invoice_settings,
            metadata={'user_id': str(user.pk)},
            api_key=self.api_key,
        )
        subscription.stripe_customer_id = customer.id
        subscription.save(update_fields=['stripe_customer_id', 'updated_at'])
        logger.info(f"[CheckoutService] User {user.pk} linked to Stripe customer {customer.id}")
        return customer.id

    def start(self, user, price_id, payment_method_id):
        if not self.api_key:
            raise BillingError("Stripe secret key is not configured")

        subscription, _ = Subscription.objects.get_or_create(user=user)

        try:
            customer_id = self.get_or_create_customer(user, subscription, payment_method_id)
            stripe_subscription = stripe.Subscription.create(
                customer=customer_id,
                items=[{'price': price_id}],
                expand=['latest_invoice.payment_intent'],
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            raise BillingError(f"Stripe rejected checkout for user {user.pk}: {e}", cause=e)

        subscription.stripe_subscription_id = stripe_subscription.id
        subscription.price_id = price_id
        subscription.status = map_provider_status(stripe_subscription.status)
        subscription.save(update_fields=['stripe_subscription_id', 'price_id', 'status', 'updated_at'])
        logger.info(
            f"[CheckoutService] User {user.pk} started {stripe_subscription.id} "
            f"on {price_id} ({stripe_subscription.status})"
        )

        return CheckoutResult(
            subscription_id=stripe_subscription.id,
            status=stripe_subscription.status,
            client_secret=_client_secret(stripe_subscription),
        )
