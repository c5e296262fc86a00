import hashlib
import hmac
import json
import time
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import stripe
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.urls import reverse
from django.utils import timezone

from predictor.exceptions import UpstreamError
from predictor.models import PlanModel, Prediction, Subscription, SubscriptionStatus
from predictor.pipeline import PredictionPipeline, PredictionStore
from predictor.views import PredictDomainsView

pytestmark = pytest.mark.django_db


@pytest.fixture
def pipeline_factory(rng, stub_checker, llm_response):
    """Makes PredictDomainsView build a pipeline around a stubbed LLM and checker."""
    llm = MagicMock()
    llm.complete.return_value = llm_response("techcloud.ai is great. aicorp.com also strong.")

    def build(view, config):
        return PredictionPipeline(config, llm, stub_checker, PredictionStore(), rng=rng)

    with patch.object(PredictDomainsView, "build_pipeline", build):
        yield llm



# ============================================
# POST /api/predictions
# ============================================
class TestPredictDomainsView:
    url = "/api/predictions"

    def test_returns_enriched_domains_and_persists(self, auth_client, active_user, pipeline_factory):
        response = auth_client.post(self.url, {"niche": "technology", "keywords": "ai,cloud"}, format="json")

        assert response.status_code == 200
        body = response.json()
        assert [d["domain"] for d in body["domains"]] == ["techcloud.ai", "aicorp.com"]
        assert body["domains"][0]["price"] == "12.99"
        assert body["domains"][1]["available"] is False
        assert body["domains"][1]["price"] == "0.00"

        prediction = Prediction.objects.get(pk=body["prediction_id"])
        assert prediction.user == active_user
        assert prediction.search_params["timeframe_months"] == 3
        assert len(prediction.domains) == 2

    def test_inactive_subscriber_gets_403(self, api_client, user, pipeline_factory):
        api_client.force_authenticate(user=user)
        response = api_client.post(self.url, {"niche": "technology"}, format="json")

        assert response.status_code == 403
        assert response.json()["code"] == "unauthorized"
        pipeline_factory.complete.assert_not_called()

    def test_blank_niche_gets_400(self, auth_client, pipeline_factory):
        response = auth_client.post(self.url, {"niche": "  "}, format="json")

        assert response.status_code == 400
        assert response.json()["field"] == "niche"

    def test_missing_niche_gets_400(self, auth_client, pipeline_factory):
        response = auth_client.post(self.url, {"keywords": "ai"}, format="json")
        assert response.status_code == 400
        assert "niche" in response.json()

    def test_upstream_failure_gets_502(self, auth_client, pipeline_factory):
        pipeline_factory.complete.side_effect = UpstreamError("HTTP 500 from OpenAI")

        response = auth_client.post(self.url, {"niche": "technology"}, format="json")

        assert response.status_code == 502
        assert "OpenAI" not in response.json()["detail"]

    def test_unexpected_failure_gets_500_with_a_code(self, auth_client, pipeline_factory):
        pipeline_factory.complete.side_effect = RuntimeError("boom")

        response = auth_client.post(self.url, {"niche": "technology"}, format="json")

        assert response.status_code == 500
        assert response.json()["code"] == "prediction_error"
        assert "boom" not in response.json()["detail"]

    def test_no_suggestions_is_an_empty_success(self, auth_client, pipeline_factory, llm_response):
        pipeline_factory.complete.return_value = llm_response("?? !!")

        response = auth_client.post(self.url, {"niche": "technology"}, format="json")

        assert response.status_code == 200
        assert response.json()["domains"] == []
        assert Prediction.objects.count() == 0

    def test_anonymous_is_rejected(self, api_client):
        response = api_client.post(self.url, {"niche": "technology"}, format="json")
        assert response.status_code == 403



# ============================================
# GET /api/predictions/history
# ============================================
class TestPredictionHistoryView:
    url = "/api/predictions/history"

    def test_lists_only_own_runs_newest_first(self, auth_client, active_user):
        other = get_user_model().objects.create_user(username="bob")
        Prediction.objects.create(user=other, search_params={"niche": "pets"}, domains=[])
        first = Prediction.objects.create(user=active_user, search_params={"niche": "travel"}, domains=[])
        second = Prediction.objects.create(user=active_user, search_params={"niche": "fintech"}, domains=[])

        response = auth_client.get(self.url)

        assert response.status_code == 200
        assert [r["id"] for r in response.json()["results"]] == [second.id, first.id]

    def test_filters_by_niche_and_date(self, auth_client, active_user):
        old = Prediction.objects.create(user=active_user, search_params={"niche": "Travel deals"}, domains=[])
        Prediction.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=30))
        recent = Prediction.objects.create(user=active_user, search_params={"niche": "travel"}, domains=[])
        Prediction.objects.create(user=active_user, search_params={"niche": "pets"}, domains=[])

        response = auth_client.get(self.url, {"niche": "travel"})
        assert {r["id"] for r in response.json()["results"]} == {old.id, recent.id}

        after = (timezone.now() - timedelta(days=1)).isoformat()
        response = auth_client.get(self.url, {"niche": "travel", "created_at_after": after})
        assert [r["id"] for r in response.json()["results"]] == [recent.id]



# ============================================
# POST /api/billing/webhook
# ============================================
class TestStripeWebhookView:
    url = "/api/billing/webhook"
    secret = "whsec_view_test"

    def _post(self, api_client, payload, secret=None):
        timestamp = int(time.time())
        digest = hmac.new(
            (secret or self.secret).encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256
        ).hexdigest()
        return api_client.post(
            self.url,
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=f"t={timestamp},v1={digest}",
        )

    @patch("predictor.tasks.send_payment_failed_email.delay")
    def test_payment_failed_event(self, mock_delay, api_client, active_user, settings):
        settings.STRIPE_WEBHOOK_SECRET = self.secret
        payload = json.dumps({
            "type": "invoice.payment_failed",
            "data": {"object": {"customer": "cus_alice", "subscription": "sub_1"}},
        })

        response = self._post(api_client, payload)

        assert response.status_code == 200
        assert Subscription.objects.get(user=active_user).status == SubscriptionStatus.PAST_DUE
        mock_delay.assert_called_once_with(active_user.id)

    def test_bad_signature_is_400(self, api_client, active_user, settings):
        settings.STRIPE_WEBHOOK_SECRET = self.secret
        payload = json.dumps({"type": "invoice.payment_failed", "data": {"object": {"customer": "cus_alice"}}})

        response = self._post(api_client, payload, secret="whsec_wrong")

        assert response.status_code == 400
        assert Subscription.objects.get(user=active_user).status == SubscriptionStatus.ACTIVE

    def test_missing_secret_is_400(self, api_client, settings):
        settings.STRIPE_WEBHOOK_SECRET = ""
        response = self._post(api_client, "{}")
        assert response.status_code == 400



# ============================================
# Subscription, plans, stats, market data, health
# ============================================
def test_subscription_status(auth_client):
    response = auth_client.get("/api/subscription")

    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["is_active"] is True


class TestCheckoutView:
    url = "/api/subscription"

    @pytest.fixture(autouse=True)
    def monthly_plan(self, settings):
        settings.STRIPE_SECRET_KEY = "sk_test"
        return PlanModel.objects.create(price_id="price_monthly", name="Monthly", price=Decimal("9.99"))

    @patch("stripe.Subscription.create")
    @patch("stripe.Customer.create")
    def test_first_checkout_stores_the_customer(self, mock_customer, mock_subscription, api_client, user):
        mock_customer.return_value = SimpleNamespace(id="cus_new")
        mock_subscription.return_value = SimpleNamespace(
            id="sub_new",
            status="incomplete",
            latest_invoice=SimpleNamespace(payment_intent=SimpleNamespace(client_secret="pi_secret")),
        )
        api_client.force_authenticate(user=user)

        response = api_client.post(
            self.url, {"price_id": "price_monthly", "payment_method_id": "pm_card"}, format="json"
        )

        assert response.status_code == 201
        assert response.json() == {
            "subscription_id": "sub_new",
            "status": "incomplete",
            "client_secret": "pi_secret",
        }
        assert Subscription.objects.get(user=user).stripe_customer_id == "cus_new"
        assert mock_customer.call_args.kwargs["api_key"] == "sk_test"

    @patch("stripe.Customer.create")
    def test_unknown_plan_is_400(self, mock_customer, auth_client):
        response = auth_client.post(
            self.url, {"price_id": "price_missing", "payment_method_id": "pm_card"}, format="json"
        )

        assert response.status_code == 400
        assert "price_id" in response.json()
        mock_customer.assert_not_called()

    @patch("stripe.Customer.create", side_effect=stripe.StripeError("Your card was declined."))
    def test_stripe_failure_is_502(self, mock_customer, api_client, user):
        api_client.force_authenticate(user=user)

        response = api_client.post(
            self.url, {"price_id": "price_monthly", "payment_method_id": "pm_card"}, format="json"
        )

        assert response.status_code == 502
        assert response.json()["code"] == "billing_error"
        assert "declined" not in response.json()["detail"]

    def test_anonymous_is_rejected(self, api_client):
        response = api_client.post(
            self.url, {"price_id": "price_monthly", "payment_method_id": "pm_card"}, format="json"
        )
        assert response.status_code == 403


def test_plans_are_public_and_only_active(api_client):
    PlanModel.objects.create(price_id="price_monthly", name="Monthly", price=Decimal("9.99"))
    PlanModel.objects.create(price_id="price_old", name="Legacy", price=Decimal("4.99"), is_active=False)

    response = api_client.get("/api/plans")

    assert response.status_code == 200
    assert [p["price_id"] for p in response.json()] == ["price_monthly"]


class TestPredictionStatsView:
    url = "/api/admin/stats"

    def test_regular_user_is_forbidden(self, auth_client):
        assert auth_client.get(self.url).status_code == 403

    def test_admin_group_member_sees_stats(self, api_client, active_user):
        manager = get_user_model().objects.create_user(username="manager")
        manager.groups.add(Group.objects.create(name="admin"))
        other = get_user_model().objects.create_user(username="bob")

        for niche in ["Tech", "tech", "pets"]:
            Prediction.objects.create(user=active_user, search_params={"niche": niche}, domains=[{"domain": "a.com"}])
        Prediction.objects.create(user=other, search_params={"niche": "pets"}, domains=[])

        api_client.force_authenticate(user=manager)
        body = api_client.get(self.url).json()

        assert body["total_searches"] == 4
        assert body["unique_users"] == 2
        assert body["avg_searches_per_user"] == 2.0
        assert body["top_niches"] == [{"niche": "pets", "count": 2}, {"niche": "tech", "count": 2}]
        assert len(body["recent_searches"]) == 4
        assert body["active_subscribers"] == 1


def test_market_trends(auth_client):
    body = auth_client.get("/api/market/trends").json()

    assert "crypto" in body["trending_keywords"]
    assert body["market_trends"][0]["category"] == "Technology"
    assert body["tld_performance"][0]["tld"] == ".com"


def test_health_check(client):
    response = client.get("/api/health/")
    assert response.status_code == 200
    assert response.json()["database"] == "ok"



# ============================================
# Django admin
# ============================================
class TestMarketDataAdmin:

    @patch("predictor.admin.refresh_market_data.delay")
    def test_refresh_button_queues_the_task(self, mock_delay, admin_client):
        response = admin_client.post(reverse("admin:predictor_refresh_market_data"))

        assert response.status_code == 302
        assert response.url == reverse("admin:predictor_prediction_changelist")
        mock_delay.assert_called_once_with()

    @patch("predictor.admin.refresh_market_data.delay")
    def test_get_does_not_queue(self, mock_delay, admin_client):
        response = admin_client.get(reverse("admin:predictor_refresh_market_data"))

        assert response.status_code == 302
        mock_delay.assert_not_called()

    def test_prediction_changelist_shows_the_button_and_no_bulk_refresh(self, admin_client):
        response = admin_client.get(reverse("admin:predictor_prediction_changelist"))

        assert response.status_code == 200
        content = response.content.decode()
        assert reverse("admin:predictor_refresh_market_data") in content
        assert "refresh_market_caches" not in content

    @patch("predictor.admin.refresh_market_data.delay")
    def test_non_staff_cannot_refresh(self, mock_delay, client, user):
        client.force_login(user)

        response = client.post(reverse("admin:predictor_refresh_market_data"))

        assert response.status_code == 302
        assert "/admin/login/" in response.url
        mock_delay.assert_not_called()
