from functools import lru_cache

from .config import settings
from .mailbox_service.service import build_mailbox_provider
from .pipeline.cache import ResultCache
from .pipeline.reputation import DomainReputationResolver
from .pipeline.verify import AddressVerifier


@lru_cache
def get_resolver() -> DomainReputationResolver:
    # One resolver per process; it reads the system resolver config on creation.
    return DomainReputationResolver(
        blocklist_zone=settings.blocklist_zone,
        rdap_base_url=settings.rdap_base_url,
    )


@lru_cache
def get_verifier() -> AddressVerifier:
    # The verifier owns the process-wide result cache.
    return AddressVerifier(
        get_resolver(),
        build_mailbox_provider(settings),
        ResultCache(settings.verify_cache_ttl_seconds),
        provider_timeout=settings.verify_provider_timeout,
    )
