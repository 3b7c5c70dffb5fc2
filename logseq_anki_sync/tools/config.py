"""
Interface to configuration as persisted in .yaml file.
"""
from __future__ import annotations

from logging import Logger

from pydantic import BaseModel, Field, field_validator

from ..connect.client import DEFAULT_URL, REQUEST_TIMEOUT, AnkiConnect
from ..core.settings import SyncSettings
from .yaml_model import BaseYamlModel

__all__ = [
    "Config",
    "ConnectConfig",
]


class ConnectConfig(BaseModel):
    """
    Encapsulates info for reaching AnkiConnect.
    """

    url: str = DEFAULT_URL
    key: str | None = None
    timeout: float = REQUEST_TIMEOUT

    @field_validator("url")
    def validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"url must be http(s): '{value}'")
        return value.rstrip("/")

    @field_validator("timeout")
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    def create_connector(self, *, logger: Logger) -> AnkiConnect:
        """
        Get client from this config's fields.
        """
        return AnkiConnect(
            self.url, key=self.key, timeout=self.timeout, logger=logger
        )


class Config(BaseYamlModel):
    """
    Encapsulates configuration for use in tools.
    """

    anki_connect: ConnectConfig = Field(default_factory=ConnectConfig)
    """
    How to reach AnkiConnect. Overridden by `--url`/`--key` options.
    """

    settings: SyncSettings = Field(default_factory=SyncSettings)
    """
    Settings applied to each sync run.
    """
