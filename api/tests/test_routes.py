import pytest
from fastapi.testclient import TestClient

from conftest import a_record, mx
from mailcheck.config import Settings
from mailcheck.deps import get_resolver, get_verifier
from mailcheck.main import app
from mailcheck.pipeline.verify import AddressVerifier
from mailcheck.routers import health as health_router
from mailcheck.routers import inspect as inspect_router
from mailcheck.routers import verify as verify_router

PHISH = (
    "From: PayPal <service@paypa1.com>\n"
    "Authentication-Results: mx.test; spf=pass; dkim=fail; dmarc=fail\n"
    "Subject: Confirm your account\n"
    "\n"
    "Confirm at https://paypa1.com/login or https://paypal.com/help\n"
)


@pytest.fixture
def verifier(make_resolver):
    resolver, _ = make_resolver({
        ("paypa1.com", "A"): [a_record()],
        ("paypal.com", "A"): [a_record()],
        ("acme-mail.com", "MX"): [mx("mx1.acme-mail.com", 10)],
    })
    return AddressVerifier(resolver)


@pytest.fixture
def client(verifier):
    app.dependency_overrides[get_resolver] = lambda: verifier.resolver
    app.dependency_overrides[get_verifier] = lambda: verifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health(client, monkeypatch):
    monkeypatch.setattr(health_router, "settings", Settings())
    assert client.get("/health").json() == {"status": "ok", "provider": False}
    monkeypatch.setattr(health_router, "settings", Settings(verifalia_username="u", verifalia_password="p"))
    assert client.get("/health").json()["provider"] is True


def test_inspect_json_clone(client):
    r = client.post("/email/inspect", json={"raw": PHISH})
    assert r.status_code == 200
    body = r.json()
    assert body["kind"] == "eml"
    assert body["meta"]["from"] == "service@paypa1.com"
    assert body["auth"] == {"spf": "pass", "dkim": "fail", "dmarc": "fail"}
    assert body["verdict"] == "clone"
    assert "Lookalike domain similar to sender" in body["reasons"]
    assert body["tips"][0] == "Do not click links"


def test_inspect_multipart_upload(client):
    files = {"file": ("message.eml", PHISH.encode(), "message/rfc822")}
    r = client.post("/email/inspect", files=files)
    assert r.status_code == 200
    assert r.json()["verdict"] == "clone"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"json": {"raw": "   "}},
        {"content": b"{not json", "headers": {"content-type": "application/json"}},
        {"content": b""},
    ],
)
def test_inspect_rejects_empty_or_malformed_bodies(client, kwargs):
    r = client.post("/email/inspect", **kwargs)
    assert r.status_code == 400
    assert r.json()["error"]


def test_inspect_corrupt_msg_is_400(client):
    r = client.post("/email/inspect", files={"file": ("invoice.msg", b"not an outlook file", "application/vnd.ms-outlook")})
    assert r.status_code == 400
    assert "Export as .eml" in r.json()["error"]


def test_inspect_unexpected_failure_is_500(client, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(inspect_router, "inspect_payload", boom)
    r = client.post("/email/inspect", json={"raw": "hello"})
    assert r.status_code == 500
    assert r.json() == {"error": "kaboom"}


def test_verify_local_baseline(client):
    r = client.get("/email/verify", params={"email": "user@acme-mail.com"})
    assert r.status_code == 200
    body = r.json()
    assert body["source"] == "local"
    assert body["hasMX"] is True
    assert body["verdict"]["list"] == "greylist"
    assert body["verdict"]["confidence"]["score"] == 4


def test_verify_missing_email_is_still_200(client):
    r = client.get("/email/verify")
    assert r.status_code == 200
    assert r.json()["formatOK"] is False
    assert r.json()["verdict"]["list"] == "blacklist"


def test_verify_pipeline_failure_falls_back(client, verifier, monkeypatch):
    async def broken(address):
        raise RuntimeError("cache unavailable")

    monkeypatch.setattr(verifier, "verify", broken)
    r = client.get("/email/verify", params={"email": "user@acme-mail.com"})
    assert r.status_code == 200
    body = r.json()
    assert body["source"] == "local"
    assert "cache unavailable" in body["notes"]


def test_debug_env_never_leaks_values(client, monkeypatch):
    monkeypatch.setattr(verify_router, "settings", Settings(verifalia_username="me", verifalia_password=""))
    body = client.get("/email/debug-env").json()
    assert body == {"VERIFALIA_USERNAME": "loaded", "VERIFALIA_PASSWORD": "missing"}


def test_ping_requires_host(client):
    r = client.post("/tools/ping", json={})
    assert r.status_code == 400
    assert r.json() == {"error": "host required"}


def test_ping_unresolvable_host(client):
    r = client.post("/tools/ping", json={"host": "nowhere.invalid"})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is False
    assert body["host"] == "nowhere.invalid"
    assert "does not resolve" in body["error"]


def test_ping_malformed_host_is_not_a_server_error(client, verifier):
    verifier.resolver.resolver.answers[("[::1", "A")] = [a_record("127.0.0.1")]
    r = client.post("/tools/ping", json={"host": "[::1"})
    assert r.status_code == 200
    assert r.json()["ok"] is False
