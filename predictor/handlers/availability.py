import hashlib
import logging
import re
import socket
from decimal import Decimal

import requests

from ..records import AvailabilityResult
from .valuation import estimate_price, split_domain

logger = logging.getLogger(__name__)

ZERO_PRICE = Decimal('0.00')

WHOIS_PORT = 43

# TLD -> WHOIS server
WHOIS_SERVERS = {
    'com': 'whois.verisign-grs.com',
    'net': 'whois.verisign-grs.com',
    'org': 'whois.pir.org',
    'info': 'whois.afilias.net',
    'biz': 'whois.neulevel.biz',
    'io': 'whois.nic.io',
    'co': 'whois.nic.co',
    'me': 'whois.nic.me',
    'us': 'whois.nic.us',
    'uk': 'whois.nic.uk',
    'ca': 'whois.cira.ca',
    'au': 'whois.auda.org.au',
    'de': 'whois.denic.de',
    'fr': 'whois.nic.fr',
    'nl': 'whois.domain-registry.nl',
    'ai': 'whois.nic.ai',
}

# What each registry prints when nobody holds the name
WHOIS_AVAILABLE_PATTERNS = {
    'com': re.compile(r'No match for'),
    'net': re.compile(r'No match for'),
    'org': re.compile(r'NOT FOUND'),
    'info': re.compile(r'NOT FOUND'),
    'biz': re.compile(r'Not found:'),
    'io': re.compile(r'is available for purchase'),
    'co': re.compile(r'No Data Found'),
    'me': re.compile(r'NOT FOUND'),
    'us': re.compile(r'Not found:'),
    'uk': re.compile(r'No match for'),
    'ca': re.compile(r'Domain status:\s+available'),
    'au': re.compile(r'No Data Found'),
    'de': re.compile(r'Status:\s+free'),
    'fr': re.compile(r'No entries found'),
    'nl': re.compile(r'is free'),
    'ai': re.compile(r'No Object Found'),
}

GENERIC_AVAILABLE_PATTERN = re.compile(
    r'No match|not found|No Data Found|is available|is free|No Object Found',
    re.IGNORECASE,
)


def _priced(domain, available, source, rng=None):
    price = estimate_price(domain, rng=rng) if available else ZERO_PRICE
    return AvailabilityResult(available=available, price=price, source=source)



# ============================================
# Tier 1 - configured availability API
# ============================================
class DomainApiStrategy:
    """
    Asks the configured domain-availability API. Any deviation from
    `{"available": bool, "price": number}` counts as a miss.
    """
    name = 'api'

    def __init__(self, api_key, api_url, timeout=15):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout

    def lookup(self, domain):
        if not self.api_key or not self.api_url:
            return None

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = requests.post(
                self.api_url,
                json={"domain": domain},
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.warning(f"[DomainApiStrategy] Lookup failed for {domain}: {e}")
            return None
        except ValueError:
            logger.warning(f"[DomainApiStrategy] Non-JSON response for {domain}")
            return None

        if not isinstance(data, dict):
            return None

        available = data.get("available")
        price = data.get("price")

        if not isinstance(available, bool):
            return None
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            return None

        if not available:
            return AvailabilityResult(available=False, price=ZERO_PRICE, source=self.name)

        price = Decimal(str(price)).quantize(Decimal('0.01'))
        if price <= 0:
            logger.warning(f"[DomainApiStrategy] Non-positive price for available domain {domain}")
            return None

        return AvailabilityResult(available=True, price=price, source=self.name)



# ============================================
# Tier 2 - raw WHOIS query on port 43
# ============================================
class WhoisStrategy:
    name = 'whois'

    def __init__(self, timeout=10, socket_factory=socket.create_connection, rng=None):
        # socket_factory=None means raw sockets are not usable here
        self.timeout = timeout
        self.socket_factory = socket_factory
        self.rng = rng

    def query(self, server, domain):
        """Sends '<domain>\\r\\n' and reads until the server closes the connection."""
        chunks = []
        with self.socket_factory((server, WHOIS_PORT), timeout=self.timeout) as conn:
            conn.sendall(f"{domain}\r\n".encode('ascii'))
            while True:
                chunk = conn.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b''.join(chunks).decode('utf-8', errors='replace')

    @staticmethod
    def is_available(response, tld):
        pattern = WHOIS_AVAILABLE_PATTERNS.get(tld, GENERIC_AVAILABLE_PATTERN)
        return pattern.search(response) is not None

    def lookup(self, domain):
        if self.socket_factory is None:
            return None

        _, tld = split_domain(domain)
        server = WHOIS_SERVERS.get(tld)
        if not server:
            return None

        try:
            response = self.query(server, domain)
        except (OSError, UnicodeError) as e:
            logger.info(f"[WhoisStrategy] {server} unreachable for {domain}: {e}")
            return None

        return _priced(domain, self.is_available(response, tld), self.name, self.rng)



# ============================================
# Tier 3 - deterministic pseudo-random answer
# ============================================
class HashFallbackStrategy:
    """
    Same domain, same answer: the first 4 hex digits of an md5 digest decide,
    with roughly 60% of names coming out available.
    """
    name = 'fallback'

    def __init__(self, rng=None):
        self.rng = rng

    @staticmethod
    def is_available(domain):
        digest = hashlib.md5(domain.encode('utf-8')).hexdigest()
        return int(digest[:4], 16) % 10 < 6

    def lookup(self, domain):
        return _priced(domain, self.is_available(domain), self.name, self.rng)



# ============================================
# Coordinator
# ============================================
class AvailabilityChecker:
    """
    Walks an ordered list of strategies until one returns a result.

    check() never raises: a strategy that blows up is logged and skipped, and
    the last strategy always answers.
    """

    def __init__(self, strategies=None):
        self.strategies = list(strategies) if strategies else [HashFallbackStrategy()]

    @classmethod
    def from_config(cls, config, rng=None, socket_factory=socket.create_connection):
        strategies = []
        if config.domain_api_key:
            strategies.append(DomainApiStrategy(
                config.domain_api_key,
                config.domain_api_url,
                timeout=config.availability_timeout
            ))
        strategies.append(WhoisStrategy(timeout=config.whois_timeout, socket_factory=socket_factory, rng=rng))
        strategies.append(HashFallbackStrategy(rng=rng))
        return cls(strategies)

    def check(self, domain):
        for strategy in self.strategies:
            try:
                result = strategy.lookup(domain)
            except Exception:
                logger.exception(f"[AvailabilityChecker] {strategy.name} failed for {domain}")
                continue

            if result is not None:
                logger.debug(f"[AvailabilityChecker] {domain} answered by {result.source}")
                return result

        # Only reachable when a custom strategy list has no terminal tier
        return HashFallbackStrategy().lookup(domain)
