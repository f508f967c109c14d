"""
Address verification: format, domain reputation and mailbox classification.

The pipeline answers "is it safe to send to this address?" from three
sources. Format is checked locally, domain reputation comes from DNS,
the blocklist zone and RDAP/WHOIS, and, when configured, an external
provider classifies the mailbox itself. Any provider failure falls back to
a local baseline that is explicit about its lower certainty (`strict=false`).
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from mailcheck.mailbox_service.service import (
    CATCH_ALL,
    DELIVERABLE,
    UNDELIVERABLE,
    UNKNOWN,
    MailboxResult,
    ProviderError,
    VerifaliaClient,
)

from .cache import ResultCache
from .reputation import DEFAULT_BLOCKLIST_ZONE, DomainReputation, DomainReputationResolver
from .timeouts import with_timeout

logger = logging.getLogger(__name__)

LOCAL_NOTE = "Local baseline used. Could not confirm mailbox existence."
PROVIDER_NOTES = [
    "Validation performed via Verifalia.",
    "Result reflects mailbox-level verification without sending an email.",
]
DEFAULT_TTL_SECONDS = 6 * 60 * 60


# ============================================================================
# Helper Functions
# ============================================================================

def normalize_address(address: Optional[str]) -> str:
    return (address or "").strip().lower()


def is_valid_format(address: str) -> bool:
    """RFC-shaped syntax check; UTF-8 local parts are rejected."""
    if not address:
        return False
    try:
        validate_email(address, check_deliverability=False, allow_smtputf8=False)
    except EmailNotValidError:
        return False
    return True


def domain_age_days(created: Optional[datetime], now: datetime) -> int:
    if created is None:
        return 0
    return max(0, (now - created).days)


def _list_for(format_ok: bool, reputation: Optional[DomainReputation], mailbox_status: Optional[str]) -> str:
    if not format_ok or (reputation is not None and reputation.blocklisted):
        return "blacklist"
    if mailbox_status == DELIVERABLE and reputation is not None and reputation.has_mx:
        return "whitelist"
    if mailbox_status == UNDELIVERABLE:
        return "blacklist"
    return "greylist"


def _safe_to_send(format_ok: bool, reputation: Optional[DomainReputation], mailbox_status: str, strict: bool) -> bool:
    if not format_ok or reputation is None:
        return False
    if not reputation.has_mx or reputation.blocklisted or mailbox_status == UNDELIVERABLE:
        return False
    return mailbox_status == DELIVERABLE if strict else True


def _domain_fields(reputation: Optional[DomainReputation], zone: str) -> Dict[str, Any]:
    if reputation is None:
        return {
            "hasMX": False,
            "mx": [],
            "dbl": {"listed": False, "engine": zone},
            "whois": {"created": None},
        }
    created = reputation.registration_date
    return {
        "hasMX": reputation.has_mx,
        "mx": [r.as_dict() for r in reputation.mx],
        "dbl": {"listed": reputation.blocklisted, "engine": reputation.blocklist_engine},
        "whois": {"created": created.isoformat() if created else None},
    }


def local_baseline(
    address: str,
    *,
    format_ok: bool,
    domain: str,
    reputation: Optional[DomainReputation],
    now: datetime,
    error: Optional[str] = None,
    zone: str = DEFAULT_BLOCKLIST_ZONE,
) -> Dict[str, Any]:
    """Format + MX + blocklist only; the mailbox itself stays unknown."""
    mailbox_status = UNKNOWN
    safe = _safe_to_send(format_ok, reputation, mailbox_status, strict=False)
    notes: List[str] = [LOCAL_NOTE]
    if error:
        notes.append(error)
    created = reputation.registration_date if reputation else None
    return {
        "source": "local",
        "input": address,
        "formatOK": format_ok,
        "domain": domain,
        **_domain_fields(reputation, zone),
        "mailbox": {"status": mailbox_status},
        "verdict": {
            "list": _list_for(format_ok, reputation, mailbox_status),
            "safeToSend": safe,
            "strict": False,
            "confidence": {"score": 4, "band": "medium", "ageDays": domain_age_days(created, now)},
        },
        "notes": notes,
    }


def provider_verdict(
    address: str,
    *,
    domain: str,
    reputation: DomainReputation,
    result: MailboxResult,
    source: str,
    now: datetime,
) -> Dict[str, Any]:
    """Assemble the strict verdict from a provider classification."""
    mailbox_status = result.mailbox_status
    listing = _list_for(True, reputation, mailbox_status)
    safe = _safe_to_send(True, reputation, mailbox_status, strict=True)
    if safe:
        score, band = 9, "high"
    elif listing == "greylist":
        score, band = 5, "medium"
    else:
        score, band = 2, "low"
    return {
        "source": source,
        "input": address,
        "formatOK": True,
        "domain": domain,
        **_domain_fields(reputation, reputation.blocklist_engine),
        "mailbox": {
            "status": mailbox_status,
            "classification": result.classification,
            "completed": result.status or None,
            "catchAll": result.catch_all or mailbox_status == CATCH_ALL,
            "suggestedCorrection": result.suggested_correction,
            "reasons": result.reasons,
        },
        "verdict": {
            "list": listing,
            "safeToSend": safe,
            "strict": True,
            "confidence": {
                "score": score,
                "band": band,
                "ageDays": domain_age_days(reputation.registration_date, now),
            },
        },
        "notes": list(PROVIDER_NOTES),
    }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Pipeline
# ============================================================================

class AddressVerifier:
    """Verify addresses with caching, concurrent lookups and a local fallback."""

    def __init__(
        self,
        resolver: DomainReputationResolver,
        provider: Optional[VerifaliaClient] = None,
        cache: Optional[ResultCache] = None,
        *,
        provider_timeout: float = 20.0,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.resolver = resolver
        self.provider = provider
        self.cache = cache if cache is not None else ResultCache(DEFAULT_TTL_SECONDS)
        self.provider_timeout = provider_timeout
        self._now = now

    @property
    def provider_enabled(self) -> bool:
        return self.provider is not None and self.provider.configured

    async def _classify(self, address: str) -> MailboxResult:
        result = await with_timeout(self.provider.classify(address), self.provider_timeout, None)
        if result is None:
            raise ProviderError("mailbox provider timed out")
        return result

    async def _run(self, address: str) -> Tuple[Dict[str, Any], bool]:
        """Return (result, cacheable)."""
        format_ok = is_valid_format(address)
        domain = address.rsplit("@", 1)[1] if format_ok else ""
        zone = self.resolver.blocklist_zone

        if not domain:
            return local_baseline(address, format_ok=False, domain="", reputation=None,
                                  now=self._now(), zone=zone), True

        if not self.provider_enabled:
            reputation = await self.resolver.resolve(domain)
            return local_baseline(address, format_ok=True, domain=domain, reputation=reputation,
                                  now=self._now(), zone=zone), True

        reputation, outcome = await asyncio.gather(
            self.resolver.resolve(domain),
            self._classify(address),
            return_exceptions=True,
        )
        if isinstance(reputation, BaseException):
            raise reputation
        if isinstance(outcome, BaseException):
            logger.warning(f"mailbox provider failed, using local baseline: {outcome}")
            error = str(outcome) or outcome.__class__.__name__
            # Transient provider failures are not pinned in the cache.
            return local_baseline(address, format_ok=True, domain=domain, reputation=reputation,
                                  now=self._now(), error=error, zone=zone), False

        return provider_verdict(address, domain=domain, reputation=reputation, result=outcome,
                                source=self.provider.name, now=self._now()), True

    async def verify(self, address: Optional[str]) -> Dict[str, Any]:
        """Verify one address, answering from the cache while it is fresh."""
        key = normalize_address(address)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        result, cacheable = await self._run(key)
        if cacheable:
            self.cache.set(key, result)
        return result

    async def baseline(self, address: Optional[str], error: Optional[str] = None) -> Dict[str, Any]:
        """Best-effort local answer used when the pipeline itself fails."""
        key = normalize_address(address)
        format_ok = is_valid_format(key)
        domain = key.rsplit("@", 1)[1] if format_ok else ""
        reputation = None
        if domain:
            try:
                reputation = await self.resolver.resolve(domain)
            except Exception as exc:
                logger.warning(f"reputation lookup failed during fallback: {exc!r}")
        return local_baseline(key, format_ok=format_ok, domain=domain, reputation=reputation,
                              now=self._now(), error=error, zone=self.resolver.blocklist_zone)
