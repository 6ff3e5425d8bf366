"""
Configuration for chatstream.

Resolves which proxy address the completion client and model catalog talk to.
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel, ValidationError

from .exceptions import ChatStreamError

DEFAULT_DEV_URL = "http://localhost:4000"
DEFAULT_TIMEOUT = 60.0
RESTRICTED_ROLE = "Admin Viewer"


class Settings(BaseModel):
    """Runtime settings for one chat client."""

    environment: Literal["development", "production"] = "production"
    dev_base_url: str = DEFAULT_DEV_URL
    served_origin: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    restricted_role: str = RESTRICTED_ROLE

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Reads CHATSTREAM_ENV, CHATSTREAM_DEV_URL, CHATSTREAM_ORIGIN and
        CHATSTREAM_TIMEOUT. Unset variables keep their defaults; invalid values
        raise ChatStreamError.
        """
        values = {}
        if "CHATSTREAM_ENV" in os.environ:
            values["environment"] = os.environ["CHATSTREAM_ENV"]
        if "CHATSTREAM_DEV_URL" in os.environ:
            values["dev_base_url"] = os.environ["CHATSTREAM_DEV_URL"]
        if "CHATSTREAM_ORIGIN" in os.environ:
            values["served_origin"] = os.environ["CHATSTREAM_ORIGIN"]
        if "CHATSTREAM_TIMEOUT" in os.environ:
            raw = os.environ["CHATSTREAM_TIMEOUT"]
            try:
                values["timeout"] = float(raw)
            except ValueError as e:
                raise ChatStreamError(f"Invalid CHATSTREAM_TIMEOUT: {raw!r}") from e
        try:
            return cls(**values)
        except ValidationError as e:
            raise ChatStreamError(f"Invalid chatstream settings: {e}") from e


def resolve_base_url(settings: Settings) -> str:
    """
    Pick the proxy address for this process.

    A development context always talks to the local proxy; anything else
    talks to the origin the chat UI is served from.
    """
    if settings.is_development:
        return settings.dev_base_url.rstrip("/")
    if not settings.served_origin:
        raise ChatStreamError(
            "No served origin configured. Set CHATSTREAM_ORIGIN or pass --base-url."
        )
    return settings.served_origin.rstrip("/")
