from fastapi import APIRouter
from ..config import settings

router = APIRouter()


@router.get("")
def health():
    """Return API status and whether the mailbox provider is configured."""
    return {"status": "ok", "provider": settings.provider_configured}
