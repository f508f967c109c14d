import asyncio

import pytest

from conftest import HANG, a_record
from mailcheck.pipeline import classify
from mailcheck.pipeline.classify import inspect_message, inspect_payload
from mailcheck.pipeline.extract import EmptyPayloadError, MessageParseError, extract_message

EBAY_EML = (
    "From: eBay <alerts@ebay.com>\r\n"
    "Subject: Your order shipped\r\n"
    "Date: Tue, 01 Oct 2024 10:00:00 +0000\r\n"
    "Content-Type: text/html; charset=utf-8\r\n"
    "\r\n"
    "<p>Track it <a href=\"https://www.ebay.co.uk/itm/1\">here</a>"
    "<a href=\"https://pics.ebaystatic.com/logo\">logo</a></p>\r\n"
)

LIVE = {
    ("ebay.co.uk", "A"): [a_record()],
    ("ebaystatic.com", "A"): [a_record()],
}


def test_inspect_brand_aligned_eml_is_safe(make_resolver):
    resolver, _ = make_resolver(LIVE)
    out = asyncio.run(inspect_payload(resolver, raw=EBAY_EML))
    assert out.kind == "eml"
    assert out.meta.subject == "Your order shipped"
    assert out.meta.from_ == "alerts@ebay.com"
    assert out.links == ["https://www.ebay.co.uk/itm/1", "https://pics.ebaystatic.com/logo"]
    assert [(d.domain, d.dns) for d in out.linkDomains] == [("ebay.co.uk", True), ("ebaystatic.com", True)]
    assert out.verdict == "safe"
    assert out.reasons[0] == "Links align with sender brand"
    assert out.auth.spf == "unknown"


def test_response_serializes_from_alias(make_resolver):
    resolver, _ = make_resolver(LIVE)
    out = asyncio.run(inspect_payload(resolver, raw=EBAY_EML))
    body = out.model_dump(by_alias=True)
    assert body["meta"]["from"] == "alerts@ebay.com"
    assert set(body) == {"kind", "meta", "auth", "links", "linkDomains", "verdict", "reasons", "tips"}


def test_dead_link_domains_add_risk(make_resolver):
    resolver, _ = make_resolver({})
    raw = "From: it@bank.com\nSubject: Action needed\n\nReview at https://secure-login-portal.net/x"
    out = asyncio.run(inspect_payload(resolver, raw=raw))
    assert out.linkDomains[0].dns is False
    assert out.reasons == ["Links go to other brands/domains", "Some linked domains have no DNS"]
    assert out.verdict == "warning"


def test_hanging_dns_counts_as_missing(make_resolver, monkeypatch):
    monkeypatch.setattr(classify, "LINK_DNS_BUDGET", 0.05)
    resolver, _ = make_resolver({("slow.net", "A"): HANG})
    message = extract_message(raw="Visit https://slow.net/page today")
    out = asyncio.run(inspect_message(message, resolver))
    assert out.linkDomains[0].dns is False
    assert out.kind == "raw"
    assert out.auth.model_dump() == {"spf": "not-applicable", "dkim": "not-applicable", "dmarc": "not-applicable"}


def test_plain_text_without_links_skips_dns(make_resolver):
    resolver, stub = make_resolver({})
    out = asyncio.run(inspect_payload(resolver, raw="See you at lunch."))
    assert out.links == []
    assert out.linkDomains == []
    assert out.verdict == "safe"
    assert stub.calls == []


def test_bad_payloads_raise(make_resolver):
    resolver, _ = make_resolver({})
    with pytest.raises(EmptyPayloadError):
        asyncio.run(inspect_payload(resolver, raw=""))
    with pytest.raises(MessageParseError):
        asyncio.run(inspect_payload(resolver, data=b"junk", filename="mail.msg"))


def test_scheme_less_lookalike_link_in_text_is_caught(make_resolver):
    resolver, _ = make_resolver({("paypal.com", "A"): [a_record()]})
    raw = "From: service@paypa1.com\nSubject: Account notice\n\nLog in at paypal.com/login to keep access."
    out = asyncio.run(inspect_payload(resolver, raw=raw))
    assert out.links == ["http://paypal.com/login"]
    assert [d.domain for d in out.linkDomains] == ["paypal.com"]
    assert "Lookalike domain similar to sender" in out.reasons
    assert "Links go to other brands/domains" in out.reasons
    assert out.verdict == "clone"
