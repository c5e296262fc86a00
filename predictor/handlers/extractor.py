"""
This module turns free-form LLM completion text into an ordered list of
domain candidates.

Usage:
    from predictor.handlers.extractor import extract_domains
    extract_domains("techcloud.ai is great. aicorp.com also strong.")
    # -> ['techcloud.ai', 'aicorp.com']
"""
import re

MAX_CANDIDATES = 10

FALLBACK_TLD = '.com'
FALLBACK_MIN_LENGTH = 3
FALLBACK_MAX_LENGTH = 20

# One DNS label: alnum/hyphen, 1-63 chars, no leading or trailing hyphen.
# ASCII only; the text scan accepts either case and lowercases afterwards.
_LABEL = r'[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?'
_TEXT_LABEL = r'[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?'

# A candidate must not be glued to a word (any script), an e-mail '@', another
# label or a hyphen. On the left an apostrophe also blocks; on the right it
# may follow, so possessives like "brand.com's" still yield "brand.com".
_LEFT_EDGE = r"(?<![\w@.'-])"
_RIGHT_EDGE = r"(?![\w-])"

DOMAIN_PATTERN = re.compile(
    _LEFT_EDGE + r'(' + _TEXT_LABEL + r'(?:\.' + _TEXT_LABEL + r')*\.[A-Za-z]{2,63})' + _RIGHT_EDGE
)

TOKEN_PATTERN = re.compile(_LEFT_EDGE + r'(' + _TEXT_LABEL + r')' + _RIGHT_EDGE)

# Full-string check used by callers that receive domains from elsewhere
CANDIDATE_PATTERN = re.compile(r'^' + _LABEL + r'(?:\.' + _LABEL + r')*\.[a-z]{2,63}$')


def is_valid_candidate(domain):
    return bool(domain) and CANDIDATE_PATTERN.match(domain) is not None


def _append_unique(found, seen, domain, limit):
    if domain in seen or len(found) >= limit:
        return
    seen.add(domain)
    found.append(domain)


def _primary_pass(text, limit):
    found, seen = [], set()
    for match in DOMAIN_PATTERN.finditer(text):
        _append_unique(found, seen, match.group(1).strip().lower(), limit)
        if len(found) >= limit:
            break
    return found


def _fallback_pass(text, limit):
    """Bare words become '<word>.com' when the text names no domains at all."""
    found, seen = [], set()
    for match in TOKEN_PATTERN.finditer(text):
        token = match.group(1).strip().lower()
        if not FALLBACK_MIN_LENGTH <= len(token) <= FALLBACK_MAX_LENGTH:
            continue
        if token.isdigit():
            continue
        _append_unique(found, seen, token + FALLBACK_TLD, limit)
        if len(found) >= limit:
            break
    return found


def extract_domains(ai_text, limit=MAX_CANDIDATES):
    """
    Extracts up to `limit` (never more than 10) unique, lowercase domain
    candidates from AI text, preserving first-seen order.

    Args:
        ai_text (str): Completion text returned by the LLM.
        limit (int): Requested cap, clamped to 1..10.

    Returns:
        list[str]: Candidates; empty when neither pass finds anything.
    """
    if not ai_text:
        return []

    limit = max(1, min(int(limit), MAX_CANDIDATES))

    domains = _primary_pass(ai_text, limit)
    if domains:
        return domains

    return _fallback_pass(ai_text, limit)
