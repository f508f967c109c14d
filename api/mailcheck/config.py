import os
from dataclasses import dataclass, field
from typing import List


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Process configuration, read once from the environment."""

    blocklist_zone: str = "dbl.spamhaus.org"
    rdap_base_url: str = "https://rdap.org/domain/"
    verifalia_username: str = ""
    verifalia_password: str = ""
    verifalia_base_url: str = "https://api.verifalia.com/v2.6"
    verify_cache_ttl_seconds: int = 6 * 60 * 60
    verify_provider_timeout: float = 20.0
    verify_retention: str = "Transient"
    verify_helo: str = "check.example.com"
    verify_from: str = "postmaster@check.example.com"
    lookalike_max_distance: int = 2
    max_upload_bytes: int = 20 * 1024 * 1024
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def provider_configured(self) -> bool:
        return bool(self.verifalia_username and self.verifalia_password)


def load_settings() -> Settings:
    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    return Settings(
        blocklist_zone=os.getenv("BLOCKLIST_ZONE", "dbl.spamhaus.org").strip(),
        rdap_base_url=os.getenv("RDAP_BASE_URL", "https://rdap.org/domain/").strip(),
        verifalia_username=os.getenv("VERIFALIA_USERNAME", "").strip(),
        verifalia_password=os.getenv("VERIFALIA_PASSWORD", "").strip(),
        verifalia_base_url=os.getenv("VERIFALIA_BASE_URL", "https://api.verifalia.com/v2.6").strip(),
        verify_cache_ttl_seconds=_int_env("VERIFY_CACHE_TTL_SECONDS", 6 * 60 * 60),
        verify_provider_timeout=_float_env("VERIFY_PROVIDER_TIMEOUT", 20.0),
        verify_retention=os.getenv("VERIFY_RETENTION", "Transient").strip(),
        verify_helo=os.getenv("VERIFY_HELO", "check.example.com").strip(),
        verify_from=os.getenv("VERIFY_FROM", "postmaster@check.example.com").strip(),
        lookalike_max_distance=_int_env("LOOKALIKE_MAX_DISTANCE", 2),
        max_upload_bytes=_int_env("MAX_UPLOAD_BYTES", 20 * 1024 * 1024),
        cors_origins=origins or ["*"],
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )


settings = load_settings()
