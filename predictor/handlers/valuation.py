"""
Rough pricing and resale-value heuristics for a domain name.

Both functions take an optional `rng` (a random.Random) so tests can pin the
random terms; production code uses the module-level generator.
"""
import random
from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal('0.01')

DEFAULT_TLD_PRICE = Decimal('14.99')

# Registration base price per TLD (USD)
TLD_PRICES = {
    'com': Decimal('12.99'),
    'net': Decimal('12.99'),
    'org': Decimal('12.99'),
    'info': Decimal('9.99'),
    'biz': Decimal('9.99'),
    'io': Decimal('39.99'),
    'co': Decimal('29.99'),
    'me': Decimal('19.99'),
    'us': Decimal('9.99'),
    'uk': Decimal('10.99'),
    'ca': Decimal('13.99'),
    'au': Decimal('17.99'),
    'de': Decimal('15.99'),
    'fr': Decimal('14.99'),
    'nl': Decimal('14.99'),
    'ai': Decimal('59.99'),
}

PREMIUM_KEYWORDS = (
    'crypto', 'nft', 'bitcoin', 'ai', 'data', 'tech', 'cloud', 'finance',
    'invest', 'health', 'medical', 'travel', 'luxury', 'premium', 'cyber',
)

MIN_BASE_VALUE = 20
MAX_BASE_VALUE = 200


def split_domain(domain):
    """'techcloud.co.uk' -> ('techcloud', 'uk')"""
    parts = domain.lower().split('.')
    return parts[0], parts[-1]


def _quantize(value):
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _price_length_factor(name):
    if len(name) <= 3:
        return Decimal('2.5')
    if len(name) <= 5:
        return Decimal('1.5')
    if len(name) <= 8:
        return Decimal('1.2')
    return Decimal('1')


def _composition_factor(name):
    if name.isalpha():
        return Decimal('1.2')
    if name.isalnum():
        return Decimal('1.1')
    return Decimal('1')


def estimate_price(domain, rng=None):
    """
    Estimates a registration price: TLD base x length x composition x jitter.

    The jitter keeps the figure within +/-10% of the deterministic part, so the
    result is always positive.
    """
    rng = rng or random
    name, tld = split_domain(domain)

    base_price = TLD_PRICES.get(tld, DEFAULT_TLD_PRICE)
    jitter = Decimal(str(rng.uniform(0.90, 1.10)))

    price = base_price * _price_length_factor(name) * _composition_factor(name) * jitter
    return _quantize(price)


def _value_length_factor(name):
    if len(name) <= 5:
        return Decimal('2.5')
    if len(name) <= 8:
        return Decimal('1.8')
    if len(name) <= 12:
        return Decimal('1.2')
    return Decimal('1')


def _keyword_factor(name):
    if any(keyword in name for keyword in PREMIUM_KEYWORDS):
        return Decimal('1.5')
    return Decimal('1')


def estimate_potential_value(domain, rng=None):
    """
    Speculative resale value, bounded in [20, 750].

    Deliberately naive: a random base in [20, 200] scaled up for short names
    and for names containing a premium keyword.
    """
    rng = rng or random
    name, _ = split_domain(domain)

    base_value = Decimal(rng.randint(MIN_BASE_VALUE, MAX_BASE_VALUE))
    value = base_value * _value_length_factor(name) * _keyword_factor(name)
    return _quantize(value)
