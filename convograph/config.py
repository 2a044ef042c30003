"""Centralised settings for convograph.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

# Providers whose keys are picked up from ``<PROVIDER>_API_KEY``.
KNOWN_PROVIDERS: tuple[str, ...] = (
    "openai",
    "anthropic",
    "google",
    "deepseek",
    "openrouter",
)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("CONVOGRAPH_WORKSPACE", Path.home() / ".convograph_data")
        )
    )
    cli_config_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("CONVOGRAPH_CLI_DIR", Path.home() / ".convograph_cli")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "projects.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Project defaults
    # ------------------------------------------------------------------
    default_model: str = field(
        default_factory=lambda: os.environ.get("DEFAULT_MODEL", "gpt-4o")
    )
    default_language: str = field(
        default_factory=lambda: os.environ.get("DEFAULT_LANGUAGE", "en")
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "WARNING")
    )

    @property
    def api_keys(self) -> dict[str, str]:
        """Provider API keys found in the environment, keyed by provider id."""
        keys: dict[str, str] = {}
        for provider in KNOWN_PROVIDERS:
            value = os.environ.get(f"{provider.upper()}_API_KEY")
            if value is not None:
                keys[provider] = value
        return keys

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    """Apply ``settings.log_level`` (or *level*) to the ``convograph`` logger."""
    name = (level or settings.log_level).upper()
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("convograph").setLevel(getattr(logging, name, logging.WARNING))


# Module-level singleton, import this everywhere:
#   from convograph.config import settings
settings = Settings()
