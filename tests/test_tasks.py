from unittest.mock import MagicMock, patch

import pytest
from celery.exceptions import Retry
from django.contrib.auth import get_user_model
from django.core import mail
from django.core.management import call_command
from django_celery_beat.models import PeriodicTask

from predictor.celery_schedules import initialize_schedules
from predictor.models import PlanModel, Subscription, SubscriptionStatus
from predictor.postmark_backend import EmailBackend
from predictor.tasks import refresh_market_data, send_payment_failed_email

pytestmark = pytest.mark.django_db


@pytest.fixture
def locmem_email(settings):
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.SITE_NAME = "Domain Value Predictor"


def test_payment_failed_email_is_sent(locmem_email, user):
    send_payment_failed_email.apply(args=[user.id])

    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert message.to == ["alice@example.com"]
    assert message.subject == "Payment Failed for Domain Value Predictor Subscription"
    assert "update your payment information" in message.body


def test_payment_failed_email_skips_users_without_address(locmem_email):
    user = get_user_model().objects.create_user(username="noemail")
    send_payment_failed_email.apply(args=[user.id])
    assert mail.outbox == []


def test_payment_failed_email_retries_on_send_error(locmem_email, user):
    with patch("predictor.tasks.send_mail", side_effect=OSError("smtp down")):
        with patch.object(send_payment_failed_email, "retry", side_effect=Retry()) as mock_retry:
            with pytest.raises(Retry):
                send_payment_failed_email.run(user.id)
    assert mock_retry.call_args.kwargs["countdown"] == 300


@patch("predictor.tasks.MarketDataService")
def test_refresh_market_data(mock_service):
    mock_service.return_value.refresh.return_value = {"trending_keywords": []}
    refresh_market_data.apply()
    mock_service.return_value.refresh.assert_called_once_with()


def test_initialize_schedules_is_idempotent():
    initialize_schedules()
    initialize_schedules()

    task = PeriodicTask.objects.get(name="market_data_refresh")
    assert task.task == "refresh_market_data"
    assert task.crontab.hour == "4"
    assert task.enabled


def test_new_user_gets_an_inactive_subscription():
    user = get_user_model().objects.create_user(username="carol")
    assert Subscription.objects.get(user=user).status == SubscriptionStatus.INACTIVE


def test_seed_plans_is_idempotent():
    call_command("seed_plans")
    call_command("seed_plans")

    plans = {plan.price_id: plan for plan in PlanModel.objects.all()}
    assert set(plans) == {"price_monthly", "price_yearly"}
    assert str(plans["price_monthly"].price) == "9.99"
    assert str(plans["price_yearly"].price) == "99.99"


class TestPostmarkBackend:

    @patch("predictor.postmark_backend.PostmarkClient")
    def test_sends_plain_text_through_postmark(self, mock_client, settings):
        settings.POSTMARK_API_TOKEN = "pm-token"
        message = MagicMock(from_email="from@example.com", to=["a@example.com", "b@example.com"], subject="Hi", body="Body")

        sent = EmailBackend().send_messages([message])

        assert sent == 1
        mock_client.assert_called_once_with(server_token="pm-token")
        mock_client.return_value.emails.send.assert_called_once_with(
            From="from@example.com", To="a@example.com, b@example.com", Subject="Hi", TextBody="Body"
        )

    @patch("predictor.postmark_backend.PostmarkClient")
    def test_errors_raise_unless_silent(self, mock_client):
        mock_client.return_value.emails.send.side_effect = RuntimeError("rejected")
        message = MagicMock(from_email="f@example.com", to=["a@example.com"], subject="s", body="b")

        with pytest.raises(RuntimeError):
            EmailBackend().send_messages([message])
        assert EmailBackend(fail_silently=True).send_messages([message]) == 0

    def test_nothing_to_send(self):
        assert EmailBackend().send_messages([]) == 0
