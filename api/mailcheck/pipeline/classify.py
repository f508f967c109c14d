"""
Message inspection orchestration.

This module wires content extraction to link extraction, DNS existence checks
for linked domains and the deterministic scorer, and returns a stable,
structured response for the API layer. DNS checks are optional enrichment:
a failed lookup counts as "no DNS" and never aborts scoring.
"""

import asyncio
from typing import Optional

from ..schemas import AuthOut, InspectOut, LinkDomainOut, MetaOut
from .brand import LOOKALIKE_MAX_DISTANCE
from .deterministic import score_verdict
from .extract import NormalizedMessage, extract_message
from .links import extract_links, link_domains, registrable_domain
from .reputation import A_BUDGET, DomainReputationResolver
from .timeouts import best_effort

# A then AAAA, each with its own budget.
LINK_DNS_BUDGET = 2 * A_BUDGET


# ============================================================================
# Public API
# ============================================================================

async def inspect_message(
    message: NormalizedMessage,
    resolver: DomainReputationResolver,
    *,
    lookalike_max_distance: int = LOOKALIKE_MAX_DISTANCE,
) -> InspectOut:
    """
    Orchestrate links -> DNS existence -> scoring for a normalized message.
    """
    links = extract_links(message.text, message.html)
    domains = link_domains(links)

    # Lookups for all link domains run together; each one is bounded.
    found = await asyncio.gather(
        *(best_effort(resolver.address_exists(d), LINK_DNS_BUDGET, False, what=f"link dns {d}") for d in domains)
    )
    dns_status = dict(zip(domains, found))
    dns_missing = sum(1 for ok in found if not ok)

    sender_domain = registrable_domain(message.sender_domain) or None
    decision = score_verdict(
        sender_domain=sender_domain,
        link_domains=domains,
        auth=message.auth,
        text=f"{message.text or ''} {message.html or ''}",
        dns_missing_count=dns_missing,
        lookalike_max_distance=lookalike_max_distance,
    )

    return InspectOut(
        kind=message.kind.value,
        meta=MetaOut(subject=message.subject, from_=message.sender, date=message.date),
        auth=AuthOut(**message.auth.as_dict()),
        links=links,
        linkDomains=[LinkDomainOut(domain=d, dns=bool(dns_status.get(d, False))) for d in domains],
        verdict=decision.verdict,
        reasons=decision.reasons,
        tips=decision.tips,
    )


async def inspect_payload(
    resolver: DomainReputationResolver,
    *,
    raw: str = "",
    data: Optional[bytes] = None,
    filename: str = "",
    lookalike_max_distance: int = LOOKALIKE_MAX_DISTANCE,
) -> InspectOut:
    """Extract then inspect; raises EmptyPayloadError / MessageParseError on bad input."""
    message = extract_message(raw=raw, data=data, filename=filename)
    return await inspect_message(message, resolver, lookalike_max_distance=lookalike_max_distance)
