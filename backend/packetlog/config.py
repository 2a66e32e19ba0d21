"""Environment-driven settings for the packet logger."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

STORE_BACKENDS = ("sql", "memory")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///./packets.db"
    store_backend: str = "sql"
    udp_host: str = "0.0.0.0"
    udp_port: int = 1700
    udp_enabled: bool = True
    http_host: str = "0.0.0.0"
    http_port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])
    log_level: str = "INFO"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _split_origins(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [o.strip() for o in raw.split(",") if o.strip()]


def load_settings() -> Settings:
    """Build :class:`Settings` from the environment.

    Raises ``ValueError`` for an unknown ``PACKET_STORE`` so a typo fails the
    process at startup instead of silently picking a backend.
    """

    backend = os.getenv("PACKET_STORE", "sql").strip().lower()
    if backend not in STORE_BACKENDS:
        raise ValueError(f"PACKET_STORE must be one of {', '.join(STORE_BACKENDS)}, got {backend!r}")

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./packets.db"),
        store_backend=backend,
        udp_host=os.getenv("UDP_HOST", "0.0.0.0"),
        udp_port=int(os.getenv("UDP_PORT", "1700")),
        udp_enabled=_env_bool("UDP_ENABLED", True),
        http_host=os.getenv("HOST", "0.0.0.0"),
        http_port=int(os.getenv("PORT", "3000")),
        cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "http://localhost:5173")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
