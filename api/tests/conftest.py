import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace

import dns.resolver
import httpx
import pytest


# Ensure the `api/` directory is on sys.path so tests can import `mailcheck.*`
CURRENT_FILE = Path(__file__).resolve()
API_DIR = CURRENT_FILE.parents[1]  # .../api
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))


from mailcheck.pipeline import reputation as rep  # noqa: E402
from mailcheck.pipeline.reputation import DomainReputationResolver  # noqa: E402


HANG = "hang"


def mx(host: str, preference: int) -> SimpleNamespace:
    return SimpleNamespace(exchange=host + ".", preference=preference)


def a_record(ip: str = "93.184.216.34") -> SimpleNamespace:
    return SimpleNamespace(address=ip)


class StubDNS:
    """Stands in for dns.asyncresolver.Resolver; unknown names are NXDOMAIN."""

    def __init__(self, answers=None):
        self.answers = dict(answers or {})
        self.calls = []

    async def resolve(self, name, rdtype="A", lifetime=None, **kwargs):
        self.calls.append((name, rdtype))
        value = self.answers.get((name, rdtype))
        if value is None:
            raise dns.resolver.NXDOMAIN()
        if value == HANG:
            await asyncio.sleep(3600)
        if isinstance(value, BaseException):
            raise value
        return value


def rdap_client(routes=None, calls=None) -> httpx.AsyncClient:
    """AsyncClient answering RDAP lookups from a {domain: json} map; others 404."""
    routes = routes or {}

    def handler(request: httpx.Request) -> httpx.Response:
        domain = request.url.path.rsplit("/", 1)[-1]
        if calls is not None:
            calls.append(domain)
        if domain in routes:
            return httpx.Response(200, json=routes[domain])
        return httpx.Response(404, json={"errorCode": 404})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def _no_whois_record(domain, **kwargs):
    return None


@pytest.fixture(autouse=True)
def no_whois(monkeypatch):
    """Keep WHOIS offline; tests that need records patch it again."""
    monkeypatch.setattr(rep.asyncwhois, "aio_whois", _no_whois_record)


@pytest.fixture
def make_resolver():
    def _make(answers=None, rdap=None, rdap_calls=None, zone="dbl.spamhaus.org"):
        stub = StubDNS(answers)
        resolver = DomainReputationResolver(
            blocklist_zone=zone,
            resolver=stub,
            http_client=rdap_client(rdap, rdap_calls),
        )
        return resolver, stub

    return _make
