import hashlib
import json
import logging

import requests
from django.conf import settings
from django.core.cache import cache
from tenacity import retry, stop_after_attempt, wait_fixed, retry_if_exception_type

from .exceptions import UpstreamError

logger = logging.getLogger(__name__)



# ============================================
# LLM completion client
# ============================================
class OpenAIClient:
    """
    Handles communication with the chat-completion API used to generate
    domain ideas.
    """

    def __init__(self, api_key, model="gpt-3.5-turbo", api_url="https://api.openai.com/v1/chat/completions", timeout=30):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout

    def complete(self, system_prompt, user_prompt):
        """
        Sends one chat completion request.

        Returns:
            dict: The decoded JSON body.

        Raises:
            UpstreamError: missing key, transport failure, non-200 status,
                empty or non-JSON body.
        """
        if not self.api_key:
            raise UpstreamError("OpenAI API key is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0.7,
            "max_tokens": 1000,
        }

        try:
            response = requests.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"[OpenAIClient] Request failed: {e}")
            raise UpstreamError(f"OpenAI request failed: {e}", cause=e)

        body = response.text or ""
        if not body.strip():
            logger.error(f"[OpenAIClient] Empty response body (status {response.status_code})")
            raise UpstreamError("OpenAI returned an empty body")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"[OpenAIClient] Non-JSON response (status {response.status_code}): {body[:200]}")
            raise UpstreamError("OpenAI returned a non-JSON body", cause=e)

        if response.status_code != 200:
            message = ""
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                message = data["error"].get("message", "")
            logger.error(f"[OpenAIClient] HTTP {response.status_code}: {message or body[:200]}")
            raise UpstreamError(f"OpenAI returned HTTP {response.status_code}")

        return data



# ============================================
# Cached GET wrapper
# ============================================
class ApiHandler:
    """
    GETs JSON from an external API and keeps the decoded body in the Django
    cache for API_CACHE_TTL seconds. Connection errors and timeouts are
    retried; anything else is logged and returns None.
    """

    def __init__(self, timeout=10, cache_ttl=None):
        self.timeout = timeout
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.API_CACHE_TTL

    @staticmethod
    def cache_key_for(url, params=None):
        raw = url + json.dumps(params or {}, sort_keys=True)
        return "dvp_api_" + hashlib.md5(raw.encode("utf-8")).hexdigest()

    @retry(stop=stop_after_attempt(3), wait=wait_fixed(2),
           retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
           reraise=True)
    def _fetch(self, url, params):
        return requests.get(url, params=params, timeout=self.timeout)

    def get(self, url, params=None, cache_key=None):
        cache_key = cache_key or self.cache_key_for(url, params)

        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            response = self._fetch(url, params)
        except requests.RequestException as e:
            logger.error(f"[ApiHandler] GET {url} failed: {e}")
            return None

        if response.status_code != 200:
            logger.error(f"[ApiHandler] GET {url} returned HTTP {response.status_code}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error(f"[ApiHandler] GET {url} returned a non-JSON body")
            return None

        cache.set(cache_key, data, self.cache_ttl)
        return data

    def clear(self, cache_key):
        cache.delete(cache_key)



# ============================================
# Market data (trending keywords, niches, TLDs)
# ============================================
TRENDING_KEYWORDS = [
    'crypto', 'ai', 'nft', 'metaverse', 'defi', 'blockchain', 'saas', 'fintech',
    'ecommerce', 'healthtech', 'edtech', 'sustainability', 'remote', 'virtual',
    'digital', 'cloud', 'security', 'analytics', 'automation', 'streaming',
]

MARKET_TRENDS = [
    {
        'category': 'Technology',
        'growth_rate': 15.2,
        'popularity': 'High',
        'trending_tlds': ['.ai', '.tech', '.io'],
        'trending_keywords': ['ai', 'tech', 'data', 'cloud', 'cyber'],
        'avg_sale_price': 4250.00,
    },
    {
        'category': 'Finance',
        'growth_rate': 12.8,
        'popularity': 'High',
        'trending_tlds': ['.finance', '.bank', '.money'],
        'trending_keywords': ['crypto', 'defi', 'fintech', 'pay', 'wallet'],
        'avg_sale_price': 5680.00,
    },
    {
        'category': 'Health',
        'growth_rate': 10.5,
        'popularity': 'Medium',
        'trending_tlds': ['.health', '.care', '.med'],
        'trending_keywords': ['health', 'wellness', 'medical', 'care', 'bio'],
        'avg_sale_price': 3870.00,
    },
    {
        'category': 'E-commerce',
        'growth_rate': 14.3,
        'popularity': 'High',
        'trending_tlds': ['.shop', '.store', '.market'],
        'trending_keywords': ['shop', 'buy', 'store', 'cart', 'market'],
        'avg_sale_price': 4120.00,
    },
    {
        'category': 'Entertainment',
        'growth_rate': 9.7,
        'popularity': 'Medium',
        'trending_tlds': ['.media', '.tv', '.stream'],
        'trending_keywords': ['stream', 'play', 'watch', 'game', 'entertainment'],
        'avg_sale_price': 3540.00,
    },
]

TLD_PERFORMANCE = [
    {'tld': '.com', 'market_share': 37.6, 'avg_price': 12.99, 'growth_rate': 5.2, 'value_rating': 4.8},
    {'tld': '.net', 'market_share': 8.3, 'avg_price': 12.99, 'growth_rate': 3.1, 'value_rating': 4.2},
    {'tld': '.org', 'market_share': 7.4, 'avg_price': 12.99, 'growth_rate': 2.9, 'value_rating': 4.0},
    {'tld': '.io', 'market_share': 3.2, 'avg_price': 39.99, 'growth_rate': 12.5, 'value_rating': 4.7},
    {'tld': '.ai', 'market_share': 2.1, 'avg_price': 59.99, 'growth_rate': 24.7, 'value_rating': 4.9},
    {'tld': '.co', 'market_share': 4.5, 'avg_price': 29.99, 'growth_rate': 8.3, 'value_rating': 4.4},
    {'tld': '.me', 'market_share': 2.7, 'avg_price': 19.99, 'growth_rate': 6.8, 'value_rating': 4.1},
    {'tld': '.tech', 'market_share': 1.9, 'avg_price': 49.99, 'growth_rate': 15.2, 'value_rating': 4.5},
    {'tld': '.app', 'market_share': 2.4, 'avg_price': 14.99, 'growth_rate': 16.7, 'value_rating': 4.6},
    {'tld': '.dev', 'market_share': 1.8, 'avg_price': 14.99, 'growth_rate': 17.3, 'value_rating': 4.6},
]


class MarketDataService:
    """
    Serves the three market datasets, each cached for MARKET_DATA_CACHE_TTL.

    When MARKET_DATA_URL is set the data is pulled from `<url>/<dataset>`
    through ApiHandler; a missing or malformed remote answer falls back to
    the bundled tables.
    """

    DATASETS = {
        'trending_keywords': ('dvp_trending_keywords', TRENDING_KEYWORDS),
        'market_trends': ('dvp_domain_market_trends', MARKET_TRENDS),
        'tld_performance': ('dvp_tld_performance', TLD_PERFORMANCE),
    }

    def __init__(self, api=None, base_url=None, cache_ttl=None):
        self.api = api or ApiHandler()
        self.base_url = settings.MARKET_DATA_URL if base_url is None else base_url
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.MARKET_DATA_CACHE_TTL

    def _load(self, dataset):
        cache_key, static = self.DATASETS[dataset]

        data = cache.get(cache_key)
        if data is not None:
            return data

        data = None
        if self.base_url:
            url = f"{self.base_url.rstrip('/')}/{dataset}"
            remote = self.api.get(url)
            if isinstance(remote, list) and remote:
                data = remote
            else:
                logger.warning(f"[MarketDataService] No usable {dataset} from {url}, using bundled data")

        if data is None:
            data = list(static)

        cache.set(cache_key, data, self.cache_ttl)
        return data

    def trending_keywords(self):
        return self._load('trending_keywords')

    def market_trends(self):
        return self._load('market_trends')

    def tld_performance(self):
        return self._load('tld_performance')

    def snapshot(self):
        return {dataset: self._load(dataset) for dataset in self.DATASETS}

    def refresh(self):
        """Drops the cached datasets and loads them again."""
        cache.delete_many([cache_key for cache_key, _ in self.DATASETS.values()])
        snapshot = self.snapshot()
        logger.info(f"[MarketDataService] Refreshed {len(snapshot)} datasets")
        return snapshot
