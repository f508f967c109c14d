from typing import Any, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class InspectIn(BaseModel):
    """
    JSON body for message inspection.
    - raw: pasted message; full .eml source, HTML or plain text
    """

    raw: str = ""


class MetaOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject: str = ""
    from_: str = Field("", alias="from")
    date: Optional[str] = None


class AuthOut(BaseModel):
    """Header authentication results: pass | fail | unknown | not-applicable."""

    spf: str
    dkim: str
    dmarc: str


class LinkDomainOut(BaseModel):
    domain: str
    dns: bool


class InspectOut(BaseModel):
    """
    Output of the message inspection pipeline.
    verdict: one of safe | warning | phishing | clone | spam
    reasons: human-readable justifications, never empty
    tips: remediation advice keyed by verdict
    """

    kind: Literal["eml", "msg", "html", "raw"]
    meta: MetaOut
    auth: AuthOut
    links: List[str]
    linkDomains: List[LinkDomainOut]
    verdict: Literal["safe", "warning", "phishing", "clone", "spam"]
    reasons: List[str]
    tips: List[str]


class MxOut(BaseModel):
    exchange: str
    priority: int


class MailboxOut(BaseModel):
    status: Literal["deliverable", "undeliverable", "risky", "catch-all", "unknown"]
    classification: Optional[str] = None
    completed: Optional[str] = None
    catchAll: Optional[bool] = None
    suggestedCorrection: Optional[str] = None
    reasons: Optional[List[Any]] = None


class DblOut(BaseModel):
    listed: bool
    engine: str


class WhoisOut(BaseModel):
    created: Optional[str] = None


class ConfidenceOut(BaseModel):
    score: int = Field(ge=0, le=10)
    band: Literal["low", "medium", "high"]
    ageDays: int


class AddressVerdictOut(BaseModel):
    list: Literal["whitelist", "greylist", "blacklist"]
    safeToSend: bool
    strict: bool
    confidence: ConfidenceOut


class VerifyOut(BaseModel):
    """
    Output of address verification. Always returned with HTTP 200.
    source: "local" for the baseline, otherwise the provider name
    strict: true only when the mailbox provider contributed
    """

    source: str
    input: str
    formatOK: bool
    domain: str
    hasMX: bool
    mx: List[MxOut]
    mailbox: MailboxOut
    dbl: DblOut
    whois: WhoisOut
    verdict: AddressVerdictOut
    notes: List[str]


class PingIn(BaseModel):
    host: str = ""


class PingOut(BaseModel):
    host: Optional[str] = None
    ok: bool
    ms: Optional[int] = None
    error: Optional[str] = None
