"""ACL Composer — Application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class ComposerSettings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "ACL_COMPOSER_",
        "extra": "ignore",
    }

    # ── Chain access ───────────────────────────────────────────
    rpc_url: str = "http://localhost:8545"
    rpc_timeout_seconds: float = 30.0

    # ── Organization ───────────────────────────────────────────
    acl_app_identifier: str = "acl"

    # ── Call scripts ───────────────────────────────────────────
    call_script_spec_id: int = 1

    # ── Logging ────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"


settings = ComposerSettings()
