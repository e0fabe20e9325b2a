"""Configuration management for replfailover."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """replfailover configuration settings."""

    # General settings
    log_level: str = "INFO"

    # Cluster pair
    addresses: list[str] = Field(
        default_factory=lambda: ["https://localhost:8200", "https://localhost:8300"]
    )
    mode: Literal["dr", "performance"] = "dr"

    # Operation credential (empty triggers bootstrap)
    operation_token: str = Field(default="", repr=False)
    token_kv_mount: str = "kv"

    # Transport
    tls_skip_verify: bool = False
    request_timeout_s: float = 3.0  # Also the fixed poll interval

    # Convergence waits
    poll_max_attempts: int | None = Field(default=None, ge=1)  # None = unbounded

    # Confirmation gate
    assume_yes: bool = False

    model_config = {
        "env_prefix": "REPLFAILOVER_",
        "env_file": ".env",
    }

    @field_validator("addresses")
    @classmethod
    def _check_addresses(cls, value: list[str]) -> list[str]:
        addresses = [addr.strip().rstrip("/") for addr in value if addr.strip()]
        if len(addresses) != 2:
            raise ValueError("exactly two cluster addresses are required")
        if addresses[0] == addresses[1]:
            raise ValueError("cluster addresses must be distinct")
        for addr in addresses:
            if not addr.startswith(("http://", "https://")):
                raise ValueError(f"invalid address: {addr}")
        return addresses


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
