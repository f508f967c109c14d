from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..deps import get_resolver
from ..pipeline.probe import probe_host
from ..pipeline.reputation import DomainReputationResolver
from ..schemas import PingIn, PingOut

router = APIRouter()


@router.post("/ping", response_model=PingOut)
async def ping(payload: PingIn, resolver: DomainReputationResolver = Depends(get_resolver)):
    """Check that a host resolves and answers an HTTPS HEAD within five seconds."""
    host = payload.host.strip()
    if not host:
        return JSONResponse(status_code=400, content={"error": "host required"})
    return await probe_host(host, resolver)
