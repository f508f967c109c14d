"""
Content extraction: normalize an inspected message into one structure.

Input is either pasted text or an uploaded file. The message kind is decided
by file extension, then binary signature, then content sniffing, and each
kind has its own handler. Soft formats (eml, html, raw) never fail the
request; a recognized Outlook .msg container that cannot be read does.
"""

import logging
import re
from dataclasses import dataclass, field
from email import policy
from email.parser import BytesParser
from email.utils import getaddresses, parseaddr, parsedate_to_datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

import extract_msg
import olefile

logger = logging.getLogger(__name__)


class MessageKind(str, Enum):
    EML = "eml"
    MSG = "msg"
    HTML = "html"
    RAW = "raw"


PASS = "pass"
FAIL = "fail"
UNKNOWN = "unknown"
NOT_APPLICABLE = "not-applicable"


class EmptyPayloadError(ValueError):
    """No message content was supplied."""


class MessageParseError(ValueError):
    """A recognized container format could not be parsed."""


@dataclass(frozen=True)
class AuthSignals:
    spf: str = UNKNOWN
    dkim: str = UNKNOWN
    dmarc: str = UNKNOWN

    @classmethod
    def not_applicable(cls) -> "AuthSignals":
        return cls(spf=NOT_APPLICABLE, dkim=NOT_APPLICABLE, dmarc=NOT_APPLICABLE)

    def values(self) -> Tuple[str, str, str]:
        return (self.spf, self.dkim, self.dmarc)

    @property
    def any_fail(self) -> bool:
        return FAIL in self.values()

    @property
    def any_pass(self) -> bool:
        return PASS in self.values()

    def as_dict(self) -> Dict[str, str]:
        return {"spf": self.spf, "dkim": self.dkim, "dmarc": self.dmarc}


@dataclass(frozen=True)
class NormalizedMessage:
    kind: MessageKind
    subject: str = ""
    sender: str = ""
    date: Optional[str] = None
    text: str = ""
    html: str = ""
    auth: AuthSignals = field(default_factory=AuthSignals.not_applicable)

    @property
    def sender_domain(self) -> str:
        if "@" not in self.sender:
            return ""
        return self.sender.rsplit("@", 1)[1].strip().lower()


# ============================================================================
# Kind Detection
# ============================================================================

_EXTENSION_KINDS = {
    "msg": MessageKind.MSG,
    "eml": MessageKind.EML,
    "html": MessageKind.HTML,
    "htm": MessageKind.HTML,
    "txt": MessageKind.RAW,
}

_HEADER_LINE_RE = re.compile(r"^([A-Za-z0-9][A-Za-z0-9-]*):")
_ENVELOPE_HEADERS = {
    "from",
    "to",
    "subject",
    "date",
    "received",
    "message-id",
    "mime-version",
    "return-path",
    "reply-to",
    "delivered-to",
    "authentication-results",
}


def has_header_envelope(text: str) -> bool:
    """True when the text opens with RFC 5322 header lines including a mail header."""
    names = set()
    for line in text.lstrip("\ufeff").lstrip("\r\n").splitlines()[:200]:
        if not line.strip():
            break
        if line[0] in " \t":
            continue  # folded continuation
        m = _HEADER_LINE_RE.match(line)
        if not m:
            return False
        names.add(m.group(1).lower())
    return bool(names & _ENVELOPE_HEADERS)


def sniff_kind(text: str) -> MessageKind:
    if has_header_envelope(text):
        return MessageKind.EML
    if text.lstrip().startswith("<"):
        return MessageKind.HTML
    return MessageKind.RAW


def detect_kind(data: bytes, filename: str = "") -> MessageKind:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext in _EXTENSION_KINDS:
        return _EXTENSION_KINDS[ext]
    if data[: len(olefile.MAGIC)] == olefile.MAGIC:
        return MessageKind.MSG
    return sniff_kind(_decode(data))


# ============================================================================
# Helper Functions
# ============================================================================

def _decode(data: Any) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", "replace")
    return str(data)


def _auth_value(lowered: str, tag: str) -> str:
    m = re.search(rf"\b{tag}=([a-z]+)", lowered)
    if not m:
        return UNKNOWN
    return m.group(1) if m.group(1) in (PASS, FAIL) else UNKNOWN


def parse_auth_header(auth_results: str = "", received_spf: str = "") -> AuthSignals:
    """
    Derive spf/dkim/dmarc from `tag=value` tokens, case-insensitively.

    Authentication-Results is preferred; Received-SPF is used when it is the
    only header, and its leading result word also fills in a missing spf.
    """
    line = (auth_results or received_spf or "").lower()
    if not line:
        return AuthSignals()
    spf = _auth_value(line, "spf")
    if spf == UNKNOWN and received_spf.strip():
        first = received_spf.strip().split(None, 1)[0].lower()
        if first in (PASS, FAIL):
            spf = first
    return AuthSignals(spf=spf, dkim=_auth_value(line, "dkim"), dmarc=_auth_value(line, "dmarc"))


def _first_address(header: Any) -> str:
    if not header:
        return ""
    for _name, addr in getaddresses([str(header)]):
        if addr:
            return addr.strip()
    return ""


def _iso_date(value: Any) -> Optional[str]:
    if not value:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    try:
        return parsedate_to_datetime(str(value)).isoformat()
    except (TypeError, ValueError, IndexError):
        return None


def _part_content(part: Any) -> str:
    try:
        return str(part.get_content())
    except (LookupError, ValueError, AttributeError):
        return _decode(part.get_payload(decode=True))


def _bodies(msg: Any) -> Tuple[str, str]:
    text = ""
    html = ""
    for part in msg.walk():
        if part.is_multipart() or part.get_content_disposition() == "attachment":
            continue
        ctype = part.get_content_type()
        if ctype == "text/plain" and not text:
            text = _part_content(part)
        elif ctype == "text/html" and not html:
            html = _part_content(part)
    return text, html


# ============================================================================
# Handlers
# ============================================================================

def _parse_msg(payload: bytes) -> NormalizedMessage:
    try:
        msg = extract_msg.Message(payload)
        try:
            subject = msg.subject or ""
            sender = parseaddr(msg.sender or "")[1]
            date = _iso_date(msg.date)
            text = msg.body or ""
            html = _decode(msg.htmlBody)
        finally:
            msg.close()
    except Exception as exc:
        logger.info(f"msg container rejected: {exc!r}")
        raise MessageParseError("MSG parsing failed. Export as .eml and try again.") from exc
    return NormalizedMessage(
        kind=MessageKind.MSG,
        subject=subject,
        sender=sender,
        date=date,
        text=text,
        html=html,
        auth=AuthSignals.not_applicable(),
    )


def _parse_eml(payload: bytes) -> NormalizedMessage:
    try:
        msg = BytesParser(policy=policy.default).parsebytes(payload)
        text, html = _bodies(msg)
        return NormalizedMessage(
            kind=MessageKind.EML,
            subject=str(msg.get("Subject") or ""),
            sender=_first_address(msg.get("From")),
            date=_iso_date(msg.get("Date")),
            text=text,
            html=html,
            auth=parse_auth_header(
                str(msg.get("Authentication-Results") or ""),
                str(msg.get("Received-SPF") or ""),
            ),
        )
    except Exception as exc:
        # Soft format: downgrade rather than fail the request.
        logger.info(f"eml parse failed, treating as plain content: {exc!r}")
        text = _decode(payload)
        if text.lstrip().startswith("<"):
            return _as_html(payload)
        return _as_raw(payload)


def _as_html(payload: bytes) -> NormalizedMessage:
    return NormalizedMessage(kind=MessageKind.HTML, html=_decode(payload))


def _as_raw(payload: bytes) -> NormalizedMessage:
    return NormalizedMessage(kind=MessageKind.RAW, text=_decode(payload))


_HANDLERS: Dict[MessageKind, Callable[[bytes], NormalizedMessage]] = {
    MessageKind.MSG: _parse_msg,
    MessageKind.EML: _parse_eml,
    MessageKind.HTML: _as_html,
    MessageKind.RAW: _as_raw,
}


# ============================================================================
# Public API
# ============================================================================

def extract_message(raw: str = "", data: Optional[bytes] = None, filename: str = "") -> NormalizedMessage:
    """
    Normalize an uploaded file (`data` + `filename`) or pasted `raw` text.

    An upload takes precedence over pasted text. Raises EmptyPayloadError when
    neither carries content and MessageParseError for a corrupt .msg file.
    """
    if data:
        kind = detect_kind(data, filename)
        payload = data
    elif raw and raw.strip():
        kind = sniff_kind(raw)
        payload = raw.encode("utf-8")
    else:
        raise EmptyPayloadError("No email provided")
    logger.debug(f"extracting {kind.value} message ({len(payload)} bytes)")
    return _HANDLERS[kind](payload)
