from dataclasses import dataclass

from django.conf import settings


@dataclass(frozen=True)
class PredictorConfig:
    """
    Typed snapshot of the settings the prediction pipeline and billing code need.

    Built once per request with `from_settings()` so collaborators receive plain
    values instead of reaching into django.conf themselves.
    """
    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    openai_api_url: str = "https://api.openai.com/v1/chat/completions"
    domain_api_key: str = ""
    domain_api_url: str = ""
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    results_per_search: int = 10
    default_timeframe_months: int = 3
    llm_timeout: int = 30
    availability_timeout: int = 15
    whois_timeout: int = 10
    enrichment_workers: int = 5

    @classmethod
    def from_settings(cls):
        return cls(
            openai_api_key=settings.OPENAI_API_KEY,
            openai_model=settings.OPENAI_MODEL,
            openai_api_url=settings.OPENAI_API_URL,
            domain_api_key=settings.DOMAIN_API_KEY,
            domain_api_url=settings.DOMAIN_API_URL,
            stripe_secret_key=settings.STRIPE_SECRET_KEY,
            stripe_webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            results_per_search=settings.RESULTS_PER_SEARCH,
            default_timeframe_months=settings.DEFAULT_TIMEFRAME_MONTHS,
            llm_timeout=settings.LLM_TIMEOUT,
            availability_timeout=settings.AVAILABILITY_API_TIMEOUT,
            whois_timeout=settings.WHOIS_TIMEOUT,
            enrichment_workers=settings.ENRICHMENT_WORKERS,
        )
