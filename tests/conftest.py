import random
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from predictor.config import PredictorConfig
from predictor.models import SubscriptionStatus
from predictor.records import AvailabilityResult


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username="alice", email="alice@example.com", password="secret-pass"
    )


@pytest.fixture
def active_user(user):
    subscription = user.subscription
    subscription.status = SubscriptionStatus.ACTIVE
    subscription.stripe_customer_id = "cus_alice"
    subscription.save()
    return user


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(api_client, active_user):
    api_client.force_authenticate(user=active_user)
    return api_client


@pytest.fixture
def config():
    return PredictorConfig(openai_api_key="sk-test", enrichment_workers=4)


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def llm_response():
    """Builds a chat-completion body around the given content."""
    def build(content):
        return {"choices": [{"message": {"role": "assistant", "content": content}}]}
    return build


@pytest.fixture
def stub_checker():
    """Availability checker answering 'available at 12.99' for .ai and 'taken' for everything else."""
    def check(domain):
        if domain.endswith(".ai"):
            return AvailabilityResult(available=True, price=Decimal("12.99"), source="stub")
        return AvailabilityResult(available=False, price=Decimal("0.00"), source="stub")

    checker = MagicMock()
    checker.check.side_effect = check
    return checker
