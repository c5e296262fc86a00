"""
Prediction pipeline: authorize, validate, ask the LLM, extract candidates,
enrich each one, persist the run.

A pipeline is cheap to build and holds no shared state, so the view builds a
fresh one per request:

    pipeline = PredictionPipeline.from_config(PredictorConfig.from_settings())
    outcome = pipeline.run(request.user.id, search)
"""
import logging
import random
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple
from urllib.parse import quote

from django.db import DatabaseError

from .exceptions import (
    InvalidRequest,
    NoSuggestions,
    PredictionError,
    StorageError,
    Unauthorized,
    UpstreamError,
)
from .handlers.availability import AvailabilityChecker
from .handlers.extractor import extract_domains
from .handlers.valuation import estimate_potential_value, split_domain
from .models import Prediction, Subscription, SubscriptionStatus
from .records import DomainResult, PredictionRecord
from .services import OpenAIClient

logger = logging.getLogger(__name__)

REGISTRAR_SEARCH_URL = "https://www.namecheap.com/domains/registration/results/?domain="

SYSTEM_PROMPT = (
    "You are an expert domain investor and market analyst. Your task is to suggest "
    "potentially valuable domain names based on the following criteria."
)


def build_user_prompt(search):
    prompt = (
        f"I'm looking for domain name suggestions in the {search.niche.strip()} niche "
        f"that could increase in value within {search.timeframe_months} months."
    )
    if search.budget is not None:
        prompt += f" My budget is ${search.budget}."
    if search.keywords.strip():
        prompt += f" Keywords to consider: {search.keywords.strip()}."
    prompt += (
        " Please suggest 10 domain names that are likely available and have good "
        "investment potential. For each domain, provide a brief explanation of why "
        "it might gain value."
    )
    return prompt


def registrar_link(domain, available):
    # A taken name links to a search for its stem so the user sees alternatives
    target = domain if available else split_domain(domain)[0]
    return REGISTRAR_SEARCH_URL + quote(target, safe='')


def subscription_is_active(user_id):
    return Subscription.objects.filter(user_id=user_id, status=SubscriptionStatus.ACTIVE).exists()



class PredictionStore:
    """Append-only persistence for prediction runs."""

    def append(self, record):
        try:
            prediction = Prediction.objects.create(
                user_id=record.user_id,
                search_params=record.search_params.to_dict(),
                domains=[domain.to_dict() for domain in record.domains],
            )
        except DatabaseError as e:
            raise StorageError(f"Could not save prediction for user {record.user_id}: {e}", cause=e)
        return prediction.pk

    def get(self, record_id):
        return PredictionRecord.from_model(Prediction.objects.get(pk=record_id))



@dataclass(frozen=True)
class PredictionOutcome:
    domains: Tuple[DomainResult, ...] = field(default_factory=tuple)
    error: Optional[PredictionError] = None
    record_id: Optional[int] = None

    @property
    def ok(self):
        return self.error is None

    @property
    def kind(self):
        return self.error.kind if self.error else "ok"

    @property
    def message(self):
        return self.error.public_message if self.error else ""



class PredictionPipeline:

    def __init__(self, config, llm_client, checker, store, is_subscribed=subscription_is_active, rng=None):
        self.config = config
        self.llm_client = llm_client
        self.checker = checker
        self.store = store
        self.is_subscribed = is_subscribed
        self.rng = rng or random.Random()

    @classmethod
    def from_config(cls, config, rng=None):
        rng = rng or random.Random()
        return cls(
            config=config,
            llm_client=OpenAIClient(
                api_key=config.openai_api_key,
                model=config.openai_model,
                api_url=config.openai_api_url,
                timeout=config.llm_timeout,
            ),
            checker=AvailabilityChecker.from_config(config, rng=rng),
            store=PredictionStore(),
            rng=rng,
        )

    def run(self, user_id, search):
        try:
            self._authorize(user_id)
            self._validate(search)
            ai_text = self._generate(search)
            candidates = extract_domains(ai_text, limit=self.config.results_per_search)
            if not candidates:
                raise NoSuggestions("Extractor found no candidates in the completion text")
            domains = self._enrich(candidates)
        except PredictionError as e:
            if isinstance(e, UpstreamError):
                logger.error(f"[PredictionPipeline] User {user_id}: {e.detail}")
            else:
                logger.info(f"[PredictionPipeline] User {user_id}: {e.kind} ({e.detail})")
            return PredictionOutcome(error=e)
        except Exception as e:
            logger.exception(f"[PredictionPipeline] User {user_id}: unexpected failure")
            return PredictionOutcome(error=PredictionError(f"{type(e).__name__}: {e}", cause=e))

        record_id = self._persist(user_id, search, domains)
        logger.info(f"[PredictionPipeline] User {user_id}: {len(domains)} domains for '{search.niche.strip()}'")
        return PredictionOutcome(domains=tuple(domains), record_id=record_id)

    # ---- stages ----

    def _authorize(self, user_id):
        if user_id is None or not self.is_subscribed(user_id):
            raise Unauthorized(f"User {user_id} has no active subscription")

    def _validate(self, search):
        if not (search.niche or "").strip():
            raise InvalidRequest("Please enter a niche.", field="niche")
        if search.timeframe_months < 1:
            raise InvalidRequest("Timeframe must be at least one month.", field="timeframe_months")
        if search.budget is not None and search.budget < 0:
            raise InvalidRequest("Budget cannot be negative.", field="budget")

    def _generate(self, search):
        data = self.llm_client.complete(SYSTEM_PROMPT, build_user_prompt(search))

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError("Completion response has no choices[0].message.content", cause=e)

        if not isinstance(content, str):
            raise UpstreamError("Completion content is not a string")
        return content

    def _enrich_one(self, domain):
        availability = self.checker.check(domain)
        return DomainResult(
            domain=domain,
            available=availability.available,
            price=availability.price if availability.available else Decimal('0.00'),
            potential_value=estimate_potential_value(domain, rng=self.rng),
            registrar_link=registrar_link(domain, availability.available),
        )

    def _enrich(self, candidates):
        workers = max(1, min(self.config.enrichment_workers, len(candidates)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._enrich_one, candidates))

    def _persist(self, user_id, search, domains):
        record = PredictionRecord(user_id=user_id, search_params=search, domains=tuple(domains))
        try:
            return self.store.append(record)
        except StorageError as e:
            logger.error(f"[PredictionPipeline] {e.detail}")
            return None
