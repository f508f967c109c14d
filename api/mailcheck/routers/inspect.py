import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from ..config import settings
from ..deps import get_resolver
from ..pipeline.classify import inspect_payload
from ..pipeline.extract import EmptyPayloadError, MessageParseError
from ..pipeline.reputation import DomainReputationResolver
from ..schemas import InspectIn, InspectOut

logger = logging.getLogger(__name__)

router = APIRouter()


class PayloadError(ValueError):
    """The request body could not be read as a message."""


async def _read_payload(request: Request) -> Tuple[str, Optional[bytes], str]:
    """Return (raw, file bytes, filename) from a multipart or JSON request."""
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type:
        form = await request.form()
        raw_field = form.get("raw")
        raw = raw_field if isinstance(raw_field, str) else ""
        upload = form.get("file") or form.get("files")
        if not isinstance(upload, UploadFile):
            upload = next((v for _, v in form.multi_items() if isinstance(v, UploadFile)), None)
        if upload is None:
            return raw, None, ""
        data = await upload.read()
        if len(data) > settings.max_upload_bytes:
            raise PayloadError("File too large")
        return raw, data, upload.filename or ""

    body = await request.body()
    if not body.strip():
        return "", None, ""
    try:
        payload = InspectIn.model_validate_json(body)
    except ValidationError as exc:
        raise PayloadError("Invalid JSON body; expected {\"raw\": string}") from exc
    return payload.raw, None, ""


@router.post(
    "/inspect",
    response_model=InspectOut,
    responses={400: {"description": "No content or unreadable .msg"}, 500: {"description": "Internal error"}},
)
async def inspect(request: Request, resolver: DomainReputationResolver = Depends(get_resolver)):
    """
    Inspect an email and return a threat verdict.

    Accepts either a multipart upload (`file` plus optional `raw` field) of an
    .eml, .msg or .html file, or a JSON body `{"raw": "..."}` with pasted
    message source, HTML or plain text.

    Detection features:
    - Authentication results (SPF, DKIM, DMARC) from the headers
    - Link extraction and brand alignment with the sender domain
    - Lookalike (typosquatting) domains
    - DNS existence of linked domains
    - Spam language

    Returns:
    - `verdict`: safe | warning | phishing | clone | spam
    - `reasons`: why the verdict was reached
    - `tips`: what the reader should do next

    Example request:
    ```json
    {"raw": "From: alerts@ebay.com\\nSubject: Order\\n\\nSee https://www.ebay.co.uk/itm/1"}
    ```
    """
    try:
        raw, data, filename = await _read_payload(request)
        return await inspect_payload(
            resolver,
            raw=raw,
            data=data,
            filename=filename,
            lookalike_max_distance=settings.lookalike_max_distance,
        )
    except (EmptyPayloadError, MessageParseError, PayloadError) as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except Exception as exc:
        logger.exception("inspect failed")
        return JSONResponse(status_code=500, content={"error": str(exc) or "Server error"})
