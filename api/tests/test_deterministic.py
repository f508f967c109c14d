import itertools

from mailcheck.pipeline.deterministic import RULES, VERDICT_TIPS, score_verdict
from mailcheck.pipeline.extract import AuthSignals

PASSING = AuthSignals(spf="pass", dkim="pass", dmarc="pass")
NA = AuthSignals.not_applicable()


def test_brand_variants_and_allowlisted_assets_are_safe():
    d = score_verdict(
        sender_domain="ebay.com",
        link_domains=["ebay.co.uk", "ebaystatic.com"],
        auth=NA,
        text="Your order has shipped.",
    )
    assert d.verdict == "safe"
    assert d.score == 0
    assert d.reasons[0] == "Links align with sender brand"
    assert d.indicators["misaligned"] == []
    assert d.tips == VERDICT_TIPS["safe"]


def test_lookalike_sender_with_dkim_fail_is_clone():
    d = score_verdict(
        sender_domain="paypa1.com",
        link_domains=["paypal.com"],
        auth=AuthSignals(spf="unknown", dkim="fail", dmarc="unknown"),
        text="Confirm your account",
    )
    assert d.indicators["is_clone"] is True
    assert "Lookalike domain similar to sender" in d.reasons
    assert "Auth fail in headers" in d.reasons
    assert d.score >= 6
    assert d.verdict == "clone"
    assert d.tips == ["Do not click links", "Do not reply", "Report to IT", "Delete the email"]


def test_spam_language_alone_is_spam():
    d = score_verdict(
        sender_domain=None,
        link_domains=[],
        auth=PASSING,
        text="You are a WINNER! Claim now your free gift card!",
    )
    assert d.score == 1
    assert d.reasons == ["Spam language"]
    assert d.verdict == "spam"
    assert d.tips == ["Delete the email", "Block the sender"]


def test_misaligned_links_plus_dead_domain_is_phishing_not_clone():
    d = score_verdict(
        sender_domain="bank.com",
        link_domains=["secure-login-portal.net"],
        auth=AuthSignals(spf="fail", dkim="unknown", dmarc="unknown"),
        text="Please review",
        dns_missing_count=1,
    )
    assert d.score == 7
    assert d.verdict == "phishing"


def test_single_auth_fail_is_warning():
    d = score_verdict(sender_domain="shop.com", link_domains=[], auth=AuthSignals(spf="fail"), text="")
    assert d.score == 3
    assert d.verdict == "warning"
    assert d.tips == ["Verify the sender", "Hover over links to check domain"]


def test_unknown_and_not_applicable_auth_do_not_count():
    for auth in (AuthSignals(), NA):
        d = score_verdict(sender_domain=None, link_domains=[], auth=auth, text="hello")
        assert d.score == 0
        assert d.verdict == "safe"


def test_every_verdict_has_a_reason():
    d = score_verdict(sender_domain=None, link_domains=[], auth=NA, text="")
    assert d.verdict == "safe"
    assert d.reasons == ["No risk signals detected"]


def test_passing_auth_is_confirmed_when_safe():
    d = score_verdict(sender_domain="shop.com", link_domains=["shop.com"], auth=PASSING, text="hi")
    assert d.reasons == ["Links align with sender brand", "At least one auth signal passes"]


def _score_with(signals):
    links = ["paypal.com"]
    if "lookalike" in signals:
        links.append("paypa1.com")
    if "misaligned" in signals:
        links.append("unrelated.org")
    return score_verdict(
        sender_domain="paypal.com",
        link_domains=links,
        auth=AuthSignals(dkim="fail") if "auth" in signals else NA,
        text="hello",
        dns_missing_count=1 if "dns" in signals else 0,
    ).score


def test_adding_a_risk_signal_never_lowers_the_score():
    names = ["auth", "lookalike", "misaligned", "dns"]
    for size in range(len(names)):
        for combo in itertools.combinations(names, size):
            before = _score_with(set(combo))
            for extra in set(names) - set(combo):
                assert _score_with(set(combo) | {extra}) >= before


def test_rules_can_be_overridden():
    d = score_verdict(sender_domain=None, link_domains=[], auth=NA, text="winner", rules=RULES[1:])
    assert d.score == 0
    assert d.verdict == "safe"
