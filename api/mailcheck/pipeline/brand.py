"""
Brand alignment between a sender domain and the domains it links to.

A link is aligned when it belongs to the sender's brand: same registrable
domain, same root label under another suffix (ebay.com / ebay.co.uk), or a
known auxiliary domain of that brand. A lookalike is a near-miss spelling of
the sender domain that is NOT the same brand.
"""

from typing import Dict, List, Set

from rapidfuzz.distance import Levenshtein

from .links import registrable_domain

# Known off-domain assets (CDN, auth, static) per root label.
BRAND_ALLOW: Dict[str, List[str]] = {
    "ebay": ["ebaystatic.com", "ebaydesc.com", "ebayinc.com"],
    "microsoft": ["microsoftonline.com", "office.com", "live.com", "windows.com"],
    "google": ["googleusercontent.com", "gstatic.com", "withgoogle.com"],
    "apple": ["icloud.com", "appleid.apple.com"],
}

LOOKALIKE_MAX_DISTANCE = 2


def root_label(domain: str) -> str:
    """Leftmost label of the registrable domain."""
    base = registrable_domain(domain)
    return base.split(".")[0] if base else ""


def same_brand(a: str, b: str) -> bool:
    da = registrable_domain(a)
    db = registrable_domain(b)
    if not da or not db:
        return False
    if da == db:
        return True
    ra = root_label(da)
    rb = root_label(db)
    return bool(ra) and ra == rb


def allowed_domains(sender_domain: str) -> Set[str]:
    """The sender's own registrable domain plus its brand allowlist entries."""
    base = registrable_domain(sender_domain)
    if not base:
        return set()
    extras = BRAND_ALLOW.get(root_label(base), [])
    return {base, *(registrable_domain(d) for d in extras)}


def is_aligned(link_domain: str, sender_domain: str) -> bool:
    if same_brand(link_domain, sender_domain):
        return True
    return registrable_domain(link_domain) in allowed_domains(sender_domain)


def is_lookalike(a: str, b: str, max_distance: int = LOOKALIKE_MAX_DISTANCE) -> bool:
    """Edit distance within `max_distance` while not being the same brand."""
    da = registrable_domain(a)
    db = registrable_domain(b)
    if not da or not db or same_brand(da, db):
        return False
    return Levenshtein.distance(da, db) <= max_distance
