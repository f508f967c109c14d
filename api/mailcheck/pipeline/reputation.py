"""
Domain reputation: MX/A records, blocklist status and registration date.

Every step is time-bounded and isolated. A failing step degrades to an empty
or negative value instead of aborting the whole resolution, and the three
independent steps run concurrently.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar
from urllib.parse import quote

import asyncwhois
import dns.asyncresolver
import dns.exception
import dns.resolver
import httpx
from dateutil import parser as date_parser

from .timeouts import with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ============================================================================
# Budgets and Constants
# ============================================================================

MX_BUDGET = 5.0
A_BUDGET = 4.0
BLOCKLIST_BUDGET = 3.0
RDAP_BUDGET = 6.0
WHOIS_BUDGET = 6.0

DEFAULT_BLOCKLIST_ZONE = "dbl.spamhaus.org"
DEFAULT_RDAP_BASE_URL = "https://rdap.org/domain/"

# Registration-type actions win over a generic "create".
_RDAP_PRIMARY = re.compile(r"registration|created|creation", re.IGNORECASE)
_RDAP_SECONDARY = re.compile(r"registration|create", re.IGNORECASE)

WHOIS_CREATED_KEYS = ("creation_date", "created", "Creation Date", "registered")


@dataclass(frozen=True)
class MxRecord:
    exchange: str
    priority: int

    def as_dict(self) -> Dict[str, Any]:
        return {"exchange": self.exchange, "priority": self.priority}


@dataclass(frozen=True)
class DomainReputation:
    domain: str
    mx: List[MxRecord] = field(default_factory=list)
    blocklisted: bool = False
    blocklist_engine: str = DEFAULT_BLOCKLIST_ZONE
    registration_date: Optional[datetime] = None

    @property
    def has_mx(self) -> bool:
        return bool(self.mx)


# ============================================================================
# Helper Functions
# ============================================================================

def parse_date(value: Any) -> Optional[datetime]:
    """Coerce an RDAP/WHOIS date value into an aware datetime; None if unusable."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = date_parser.parse(str(value))
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def pick_rdap_created(events: Any) -> Optional[datetime]:
    """Return the registration date from an RDAP `events` array."""
    if not isinstance(events, list):
        return None
    candidates = [e for e in events if isinstance(e, dict) and e.get("eventDate")]
    for pattern in (_RDAP_PRIMARY, _RDAP_SECONDARY):
        for event in candidates:
            if pattern.search(str(event.get("eventAction") or "")):
                return parse_date(event["eventDate"])
    return None


def pick_whois_created(info: Any) -> Optional[datetime]:
    """Return the creation date from a WHOIS record using known key names."""
    if not info:
        return None
    for key in WHOIS_CREATED_KEYS:
        try:
            value = info.get(key)
        except AttributeError:
            value = getattr(info, key, None)
        created = parse_date(value)
        if created is not None:
            return created
    return None


async def _first_of(attempts: Sequence[Callable[[], Awaitable[T]]], empty: T, *, what: str) -> T:
    """Run attempts in order; return the first non-empty result."""
    for attempt in attempts:
        try:
            result = await attempt()
        except Exception as exc:
            logger.debug(f"{what}: attempt failed: {exc!r}")
            continue
        if result:
            return result
    return empty


# ============================================================================
# Resolver
# ============================================================================

class DomainReputationResolver:
    """Resolve the reputation signals of a mail domain."""

    def __init__(
        self,
        *,
        blocklist_zone: str = DEFAULT_BLOCKLIST_ZONE,
        rdap_base_url: str = DEFAULT_RDAP_BASE_URL,
        resolver: Optional[dns.asyncresolver.Resolver] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.blocklist_zone = blocklist_zone.strip(".")
        self.rdap_base_url = rdap_base_url if rdap_base_url.endswith("/") else rdap_base_url + "/"
        self.resolver = resolver or dns.asyncresolver.Resolver()
        self.http_client = http_client

    # ---- DNS primitives ----

    async def _query(self, name: str, rdtype: str, budget: float) -> List[Any]:
        """Single DNS query; missing names and empty answers come back as []."""
        try:
            answer = await with_timeout(self.resolver.resolve(name, rdtype, lifetime=budget), budget, None)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer, dns.resolver.NoNameservers, dns.exception.DNSException):
            return []
        return list(answer) if answer is not None else []

    async def _mx_from_mx(self, domain: str) -> List[MxRecord]:
        answers = await self._query(domain, "MX", MX_BUDGET)
        records = [MxRecord(exchange=str(r.exchange).rstrip("."), priority=int(r.preference)) for r in answers]
        return sorted(records, key=lambda r: r.priority)

    async def _mx_from_a(self, domain: str) -> List[MxRecord]:
        answers = await self._query(domain, "A", A_BUDGET)
        return [MxRecord(exchange=domain, priority=0)] if answers else []

    async def mx_records(self, domain: str) -> List[MxRecord]:
        """MX records sorted by priority, else an implicit MX from an A record."""
        return await _first_of(
            [lambda: self._mx_from_mx(domain), lambda: self._mx_from_a(domain)],
            [],
            what=f"mx {domain}",
        )

    async def address_exists(self, domain: str) -> bool:
        """True when the name resolves to an IPv4 or IPv6 address."""
        found = await _first_of(
            [lambda: self._query(domain, "A", A_BUDGET), lambda: self._query(domain, "AAAA", A_BUDGET)],
            [],
            what=f"address {domain}",
        )
        return bool(found)

    async def blocklist_listed(self, domain: str) -> bool:
        """Any address under `<domain>.<zone>` means the domain is listed."""
        try:
            answers = await self._query(f"{domain}.{self.blocklist_zone}", "A", BLOCKLIST_BUDGET)
        except Exception as exc:
            logger.debug(f"blocklist {domain}: {exc!r}")
            return False
        return bool(answers)

    # ---- Registration date ----

    async def _fetch_rdap(self, domain: str) -> Optional[Dict[str, Any]]:
        url = f"{self.rdap_base_url}{quote(domain)}"
        headers = {"accept": "application/rdap+json, application/json"}
        if self.http_client is not None:
            res = await self.http_client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=RDAP_BUDGET, follow_redirects=True) as client:
                res = await client.get(url, headers=headers)
        if not res.is_success:
            return None
        return res.json()

    async def _rdap_created(self, domain: str) -> Optional[datetime]:
        data = await with_timeout(self._fetch_rdap(domain), RDAP_BUDGET, None)
        if not isinstance(data, dict):
            return None
        return pick_rdap_created(data.get("events"))

    async def _whois_created(self, domain: str) -> Optional[datetime]:
        # Registry server, then at most the one registrar it refers to.
        result = await with_timeout(
            asyncwhois.aio_whois(domain, timeout=int(WHOIS_BUDGET)),
            WHOIS_BUDGET,
            None,
        )
        if not result:
            return None
        _raw, parsed = result
        return pick_whois_created(parsed)

    async def registration_date(self, domain: str) -> Optional[datetime]:
        """RDAP first, WHOIS second; absent is a normal outcome."""
        return await _first_of(
            [lambda: self._rdap_created(domain), lambda: self._whois_created(domain)],
            None,
            what=f"registration {domain}",
        )

    # ---- Public API ----

    async def resolve(self, domain: str) -> DomainReputation:
        """Run MX, blocklist and registration lookups concurrently."""
        domain = domain.strip().lower().rstrip(".")
        mx, listed, created = await asyncio.gather(
            self.mx_records(domain),
            self.blocklist_listed(domain),
            self.registration_date(domain),
        )
        logger.debug(f"reputation {domain}: mx={len(mx)} listed={listed} created={created}")
        return DomainReputation(
            domain=domain,
            mx=mx,
            blocklisted=listed,
            blocklist_engine=self.blocklist_zone,
            registration_date=created,
        )
