"""Catalogo configuration management.

Loads configuration from environment variables with sensible defaults.
Store credentials are validated at the composition root, not here, so the
CLI can still run offline commands (validate, infer) without them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

PLACEHOLDER_STORE_URL = "https://your-project-id.supabase.co"
PLACEHOLDER_STORE_KEY = "your-anon-key-here"


@dataclass
class StoreConfig:
    """Catalog store connection configuration."""

    backend: str = "rpc"  # rpc or memory
    url: str = PLACEHOLDER_STORE_URL
    api_key: str = PLACEHOLDER_STORE_KEY
    timeout_seconds: float = 30.0

    @property
    def is_configured(self) -> bool:
        """Check that real (non-placeholder) credentials are present."""
        if self.backend == "memory":
            return True
        return bool(
            self.url
            and self.api_key
            and self.url != PLACEHOLDER_STORE_URL
            and self.api_key != PLACEHOLDER_STORE_KEY
        )

    @property
    def status_message(self) -> str:
        if self.is_configured:
            return "Catalog store configured"
        return (
            "Catalog store is not configured. Set SUPABASE_URL and "
            "SUPABASE_ANON_KEY (or CATALOG_STORE_BACKEND=memory) in the "
            "environment or .env file."
        )


@dataclass
class ImportConfig:
    """Bulk CSV import limits."""

    preview_rows: int = 5
    max_rows: int = 5000


@dataclass
class AppConfig:
    """Root application configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    csv_import: ImportConfig = field(default_factory=ImportConfig)
    log_level: str = "INFO"
    log_format: str = "text"  # json or text
    level_rules_path: Path | None = None

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Optional (with defaults):
        - CATALOG_STORE_BACKEND: "rpc" (default) or "memory"
        - SUPABASE_URL / SUPABASE_ANON_KEY: hosted store credentials
        - CATALOG_STORE_TIMEOUT: per-request timeout in seconds (default: 30)
        - CATALOG_IMPORT_MAX_ROWS: largest accepted CSV (default: 5000)
        - CATALOG_LEVEL_RULES_PATH: YAML overriding inference keywords
        - LOG_LEVEL: Logging verbosity (default: "INFO")
        """
        rules_path = os.getenv("CATALOG_LEVEL_RULES_PATH")

        return cls(
            store=StoreConfig(
                backend=os.getenv("CATALOG_STORE_BACKEND", "rpc").lower(),
                url=os.getenv("SUPABASE_URL", PLACEHOLDER_STORE_URL),
                api_key=os.getenv("SUPABASE_ANON_KEY", PLACEHOLDER_STORE_KEY),
                timeout_seconds=float(os.getenv("CATALOG_STORE_TIMEOUT", "30")),
            ),
            csv_import=ImportConfig(
                preview_rows=int(os.getenv("CATALOG_IMPORT_PREVIEW_ROWS", "5")),
                max_rows=int(os.getenv("CATALOG_IMPORT_MAX_ROWS", "5000")),
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format="json" if os.getenv("JSON_LOGS", "false").lower() == "true" else "text",
            level_rules_path=Path(rules_path) if rules_path else None,
        )


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (used by tests and the CLI)."""
    global _config
    _config = None
