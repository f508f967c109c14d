import logging

from fastapi import APIRouter, Depends, Query

from ..config import settings
from ..deps import get_verifier
from ..pipeline.verify import AddressVerifier
from ..schemas import VerifyOut

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/verify", response_model=VerifyOut)
async def verify(
    email: str = Query("", description="Address to verify"),
    verifier: AddressVerifier = Depends(get_verifier),
):
    """
    Verify an email address without sending mail.

    Checks format, MX/A records, the domain blocklist and the registration
    date, and asks the mailbox provider when credentials are configured.
    Always answers 200: on any failure the local baseline is returned with
    the failure reason in `notes`.

    Returns:
    - `verdict.list`: whitelist | greylist | blacklist
    - `verdict.safeToSend`: overall recommendation
    - `verdict.strict`: true only when the mailbox provider contributed
    """
    try:
        return await verifier.verify(email)
    except Exception as exc:
        logger.exception("verify failed, answering with local baseline")
        return await verifier.baseline(email, error=str(exc) or "verifier_error")


@router.get("/debug-env")
def debug_env():
    """Report which provider credentials are loaded, never their values."""
    return {
        "VERIFALIA_USERNAME": "loaded" if settings.verifalia_username else "missing",
        "VERIFALIA_PASSWORD": "loaded" if settings.verifalia_password else "missing",
    }
