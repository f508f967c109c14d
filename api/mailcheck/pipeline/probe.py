"""Outbound reachability probe: resolve a host, then send it an HTTPS HEAD."""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from .reputation import DomainReputationResolver
from .timeouts import with_timeout

logger = logging.getLogger(__name__)

RESOLVE_BUDGET = 4.0
HEAD_BUDGET = 5.0


async def probe_host(
    host: str,
    resolver: DomainReputationResolver,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """Return `{host, ok, ms}` on success, `{host, ok: False, error}` otherwise."""
    start = time.monotonic()
    try:
        exists = await with_timeout(resolver.address_exists(host), RESOLVE_BUDGET, False)
        if not exists:
            raise LookupError(f"{host} does not resolve")
        url = f"https://{host}"
        if http_client is not None:
            await http_client.head(url, timeout=HEAD_BUDGET)
        else:
            async with httpx.AsyncClient(timeout=HEAD_BUDGET) as client:
                await client.head(url)
    except (LookupError, httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug(f"probe {host} failed: {exc!r}")
        return {"host": host, "ok": False, "error": str(exc) or exc.__class__.__name__}
    return {"host": host, "ok": True, "ms": int((time.monotonic() - start) * 1000)}
