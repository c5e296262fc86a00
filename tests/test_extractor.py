import pytest

from predictor.handlers.extractor import MAX_CANDIDATES, extract_domains, is_valid_candidate


def test_extracts_domains_in_first_seen_order():
    text = "1. TechCloud.ai is great. 2. aicorp.com also strong. 3. techcloud.ai again."
    assert extract_domains(text) == ["techcloud.ai", "aicorp.com"]


def test_subdomains_and_multi_label_tlds_are_kept_whole():
    assert extract_domains("Try shop.example.co.uk today") == ["shop.example.co.uk"]


def test_email_addresses_are_not_candidates():
    assert extract_domains("Contact sales@brandly.io or visit brandly.com") == ["brandly.com"]


def test_dotted_identifiers_glued_to_words_are_rejected():
    # The 'name.py' inside 'my_name.py' is glued to a word character
    assert extract_domains("Run my_name.py then open greenhub.net") == ["greenhub.net"]


def test_possessive_keeps_the_domain():
    text = "TechCloud.ai's short name is catchy. Aicorp.com's brand too."
    assert extract_domains(text) == ["techcloud.ai", "aicorp.com"]


def test_trailing_hyphen_breaks_a_match():
    text = "brand.com's value, solar.io-based, and plain.net"
    assert extract_domains(text) == ["brand.com", "plain.net"]


def test_non_ascii_lookalike_letters_are_not_domains():
    # Long s, dotted capital I and the Kelvin sign look like ASCII letters but are not
    text = "Try \u017ftore.com, \u0130nfo-hub.io or \u212aeyword.net, then plain.net"
    domains = extract_domains(text)

    assert domains == ["plain.net"]
    assert all(is_valid_candidate(domain) for domain in domains)


def test_non_ascii_text_never_reaches_the_fallback_as_letters():
    domains = extract_domains("\u017ftore \u0130nfohub greenvolt")
    assert domains == ["greenvolt.com"]


def test_never_more_than_ten_candidates():
    text = " ".join(f"name{i}.com" for i in range(25))
    domains = extract_domains(text)
    assert len(domains) == MAX_CANDIDATES
    assert domains[0] == "name0.com"


def test_limit_is_clamped():
    text = "a1.com b2.com c3.com d4.com"
    assert extract_domains(text, limit=2) == ["a1.com", "b2.com"]
    assert extract_domains(text, limit=0) == ["a1.com"]
    assert len(extract_domains(text, limit=50)) == 4


def test_fallback_turns_words_into_dot_com():
    text = "Consider Solarly, GreenVolt and 2024 as brands"
    assert extract_domains(text) == [
        "consider.com", "solarly.com", "greenvolt.com", "and.com", "brands.com",
    ]


def test_fallback_skips_short_long_and_numeric_tokens():
    text = "ok 12345 " + "x" * 21 + " rooted"
    assert extract_domains(text) == ["rooted.com"]


def test_fallback_only_runs_when_primary_pass_is_empty():
    assert extract_domains("Solarly is nice but solarly.io is better") == ["solarly.io"]


@pytest.mark.parametrize("text", ["", None, "!!! ?? --", "a b c"])
def test_nothing_usable_yields_empty_list(text):
    assert extract_domains(text) == []


def test_every_result_matches_the_domain_grammar():
    text = "Ideas: Quantum-Leap.io, -bad-.com, x.y, fine-name.dev, UPPER.ORG, a.b1"
    domains = extract_domains(text)
    assert domains
    assert len(domains) == len(set(domains))
    for domain in domains:
        assert domain == domain.lower()
        assert is_valid_candidate(domain)


def test_is_valid_candidate():
    assert is_valid_candidate("techcloud.ai")
    assert is_valid_candidate("a-b.co.uk")
    assert not is_valid_candidate("-ab.com")
    assert not is_valid_candidate("ab-.com")
    assert not is_valid_candidate("ab.c")
    assert not is_valid_candidate("ab.c0m")
    assert not is_valid_candidate("")
