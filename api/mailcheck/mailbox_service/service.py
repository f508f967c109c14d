"""
Mailbox classification through an external provider (Verifalia REST API).

The provider decides whether a mailbox is likely to accept mail without an
email ever being sent. Every failure mode (missing credentials, HTTP errors,
jobs that do not finish within the wait) surfaces as ProviderError so the
verification pipeline can fall back to its local baseline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from mailcheck.config import Settings

logger = logging.getLogger(__name__)

DELIVERABLE = "deliverable"
UNDELIVERABLE = "undeliverable"
RISKY = "risky"
CATCH_ALL = "catch-all"
UNKNOWN = "unknown"

# Transient: the provider keeps no copy of the job once it is read.
DEFAULT_RETENTION = "Transient"
DEFAULT_HELO_HOST = "check.example.com"
DEFAULT_MAIL_FROM = "postmaster@check.example.com"


class ProviderError(RuntimeError):
    """The mailbox provider could not classify the address."""


@dataclass(frozen=True)
class MailboxResult:
    classification: str
    status: str = ""
    suggested_correction: Optional[str] = None
    catch_all: bool = False
    reasons: Optional[List[Any]] = None

    @property
    def mailbox_status(self) -> str:
        """Map the provider classification onto the pipeline's mailbox states."""
        cls = self.classification.strip().lower()
        if cls in (DELIVERABLE, "valid"):
            return DELIVERABLE
        if cls in (UNDELIVERABLE, "invalid"):
            return UNDELIVERABLE
        if self.catch_all:
            return CATCH_ALL
        if cls == RISKY:
            return RISKY
        return UNKNOWN


class VerifaliaClient:
    """Minimal async client for Verifalia's email validation jobs."""

    name = "verifalia"

    def __init__(
        self,
        username: str,
        password: str,
        base_url: str = "https://api.verifalia.com/v2.6",
        *,
        wait_seconds: float = 20.0,
        retention: str = DEFAULT_RETENTION,
        helo_host: str = DEFAULT_HELO_HOST,
        mail_from: str = DEFAULT_MAIL_FROM,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.username = username
        self.password = password
        self.base_url = base_url.rstrip("/")
        self.wait_seconds = wait_seconds
        self.retention = retention
        self.helo_host = helo_host
        self.mail_from = mail_from
        self.http_client = http_client

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)

    async def _post(self, url: str, params: Dict[str, Any], body: Dict[str, Any]) -> httpx.Response:
        auth = httpx.BasicAuth(self.username, self.password)
        if self.http_client is not None:
            return await self.http_client.post(url, params=params, json=body, auth=auth)
        async with httpx.AsyncClient(timeout=self.wait_seconds + 5.0) as client:
            return await client.post(url, params=params, json=body, auth=auth)

    async def classify(self, address: str) -> MailboxResult:
        """Submit one address and block (up to the wait time) for its classification."""
        if not self.configured:
            raise ProviderError("mailbox provider credentials missing")

        body = {
            "entries": [{"inputData": address}],
            "quality": "High",
            "deduplication": "Safe",
            "retention": self.retention,
            "sender": {"emailAddress": self.mail_from, "hostName": self.helo_host},
        }
        params = {"waitTime": int(self.wait_seconds * 1000)}
        try:
            res = await self._post(f"{self.base_url}/email-validations", params, body)
        except httpx.HTTPError as exc:
            raise ProviderError(f"provider request failed: {exc}") from exc

        if res.status_code == 202:
            raise ProviderError("provider job did not complete in time")
        if not res.is_success:
            raise ProviderError(f"provider returned HTTP {res.status_code}")

        try:
            payload = res.json()
        except ValueError as exc:
            raise ProviderError("provider returned malformed JSON") from exc
        entries = (payload.get("entries") or {}).get("data") or []
        if not entries:
            raise ProviderError("provider returned no entries")

        entry = entries[0]
        status = str(entry.get("status") or "")
        result = MailboxResult(
            classification=str(entry.get("classification") or "Unknown"),
            status=status,
            suggested_correction=entry.get("suggestedCorrection") or None,
            catch_all=status.lower() == "serveriscatchall",
            reasons=entry.get("statusHistory") or None,
        )
        logger.debug(f"provider classified address as {result.classification} ({status})")
        return result


def build_mailbox_provider(settings: Settings) -> Optional[VerifaliaClient]:
    """Return a configured provider client, or None when credentials are missing."""
    if not settings.provider_configured:
        return None
    return VerifaliaClient(
        settings.verifalia_username,
        settings.verifalia_password,
        settings.verifalia_base_url,
        wait_seconds=settings.verify_provider_timeout,
        retention=settings.verify_retention,
        helo_host=settings.verify_helo,
        mail_from=settings.verify_from,
    )
