import os
from typing import Literal

from pydantic import BaseModel, Field

_TRUE = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    owner: str = "owner"
    return_window: int = Field(default=100, ge=1)  # logical-clock ticks
    seed_on_startup: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_json: bool = True
    event_log_size: int = Field(default=1000, ge=1)
    transfer_log_size: int = Field(default=1000, ge=1)

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        values: dict = {}
        if "STOREFRONT_OWNER" in env:
            values["owner"] = env["STOREFRONT_OWNER"]
        if "STOREFRONT_RETURN_WINDOW" in env:
            values["return_window"] = env["STOREFRONT_RETURN_WINDOW"]
        if "STOREFRONT_SEED_ON_STARTUP" in env:
            values["seed_on_startup"] = env["STOREFRONT_SEED_ON_STARTUP"].lower() in _TRUE
        if "STOREFRONT_LOG_LEVEL" in env:
            values["log_level"] = env["STOREFRONT_LOG_LEVEL"].upper()
        if "STOREFRONT_LOG_JSON" in env:
            values["log_json"] = env["STOREFRONT_LOG_JSON"].lower() in _TRUE
        if "STOREFRONT_EVENT_LOG_SIZE" in env:
            values["event_log_size"] = env["STOREFRONT_EVENT_LOG_SIZE"]
        if "STOREFRONT_TRANSFER_LOG_SIZE" in env:
            values["transfer_log_size"] = env["STOREFRONT_TRANSFER_LOG_SIZE"]
        return cls(**values)
