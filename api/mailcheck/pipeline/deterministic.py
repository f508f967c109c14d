"""
Deterministic (rule-based) verdict scoring for inspected messages.

Rules are data: each one looks at the scoring inputs, and when it fires it
adds its points and reason. Rules are evaluated independently, so adding a
risk signal can only raise the score. The score then maps to a verdict and a
fixed set of tips the UI can show without interpretation.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .brand import LOOKALIKE_MAX_DISTANCE, is_aligned, is_lookalike
from .extract import AuthSignals

# ============================================================================
# Rule Inputs and Patterns
# ============================================================================

SPAM_PATTERN = re.compile(
    r"(winner|you won|claim now|free (?:gift|bonus)|gift card|guarantee|act now|limited time|wire transfer)",
    re.IGNORECASE,
)

VERDICT_TIPS: Dict[str, List[str]] = {
    "phishing": ["Do not click links", "Do not reply", "Report to IT", "Delete the email"],
    "clone": ["Do not click links", "Do not reply", "Report to IT", "Delete the email"],
    "spam": ["Delete the email", "Block the sender"],
    "warning": ["Verify the sender", "Hover over links to check domain"],
    "safe": ["Looks OK from checks", "Still verify unexpected requests"],
}

# Thresholds convert score -> verdict.
DANGER_THRESHOLD = 5
WARNING_THRESHOLD = 3


@dataclass
class ScoreInput:
    sender_domain: Optional[str]
    link_domains: List[str]
    auth: AuthSignals
    text: str
    dns_missing_count: int = 0
    lookalike_max_distance: int = LOOKALIKE_MAX_DISTANCE

    def misaligned_domains(self) -> List[str]:
        if not self.sender_domain:
            return []
        return [d for d in self.link_domains if not is_aligned(d, self.sender_domain)]

    def lookalike_domains(self) -> List[str]:
        if not self.sender_domain:
            return []
        return [
            d for d in self.link_domains
            if is_lookalike(d, self.sender_domain, self.lookalike_max_distance)
        ]


@dataclass(frozen=True)
class Rule:
    name: str
    points: int
    reason: str
    check: Callable[[ScoreInput], bool]
    sets_clone: bool = False


@dataclass
class Decision:
    verdict: str
    score: int
    reasons: List[str]
    tips: List[str]
    indicators: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Rule Table
# ============================================================================

RULES: List[Rule] = [
    Rule("spam_language", 1, "Spam language", lambda s: bool(SPAM_PATTERN.search(s.text or ""))),
    Rule("auth_fail", 3, "Auth fail in headers", lambda s: s.auth.any_fail),
    Rule("lookalike_domain", 3, "Lookalike domain similar to sender",
         lambda s: bool(s.lookalike_domains()), sets_clone=True),
    Rule("misaligned_links", 2, "Links go to other brands/domains", lambda s: bool(s.misaligned_domains())),
    Rule("dns_missing", 2, "Some linked domains have no DNS", lambda s: s.dns_missing_count > 0),
]


def _verdict_for(score: int, is_clone: bool, spam_hit: bool) -> str:
    if score >= DANGER_THRESHOLD:
        return "clone" if is_clone else "phishing"
    if score >= WARNING_THRESHOLD:
        return "warning"
    if spam_hit:
        return "spam"
    return "safe"


# ============================================================================
# Public API
# ============================================================================

def score_verdict(
    *,
    sender_domain: Optional[str],
    link_domains: List[str],
    auth: AuthSignals,
    text: str,
    dns_missing_count: int = 0,
    rules: Optional[List[Rule]] = None,
    lookalike_max_distance: int = LOOKALIKE_MAX_DISTANCE,
) -> Decision:
    """
    Score a normalized message and return verdict, reasons and tips.

    Args:
        sender_domain: Registrable domain of the sender, if known
        link_domains: Unique registrable domains linked from the message
        auth: SPF/DKIM/DMARC results read from the headers
        text: Combined text and HTML body used for language rules
        dns_missing_count: Number of link domains without DNS resolution
        rules: Optional override for RULES
        lookalike_max_distance: Edit distance at or below which a domain is a lookalike

    Returns:
        Decision with verdict, numeric score, reasons, tips and fired rules
    """
    inp = ScoreInput(
        sender_domain=sender_domain or None,
        link_domains=list(link_domains),
        auth=auth,
        text=text or "",
        dns_missing_count=dns_missing_count,
        lookalike_max_distance=lookalike_max_distance,
    )
    score = 0
    reasons: List[str] = []
    fired: List[str] = []
    is_clone = False

    for rule in rules if rules is not None else RULES:
        if not rule.check(inp):
            continue
        score += rule.points
        reasons.append(rule.reason)
        fired.append(rule.name)
        is_clone = is_clone or rule.sets_clone

    verdict = _verdict_for(score, is_clone, "spam_language" in fired)

    if verdict == "safe":
        positives: List[str] = []
        if inp.sender_domain and not inp.misaligned_domains():
            positives.append("Links align with sender brand")
        if auth.any_pass:
            positives.append("At least one auth signal passes")
        reasons[:0] = positives
        if not reasons:
            reasons.append("No risk signals detected")

    indicators: Dict[str, Any] = {
        "rules": fired,
        "is_clone": is_clone,
        "misaligned": inp.misaligned_domains(),
        "lookalikes": inp.lookalike_domains(),
    }
    return Decision(
        verdict=verdict,
        score=score,
        reasons=reasons,
        tips=list(VERDICT_TIPS[verdict]),
        indicators=indicators,
    )
