# ABOUTME: Dependency container for a polling cycle using Pydantic BaseModel.
# ABOUTME: Holds the settings and the httpx.AsyncClient shared by every cycle of the process.

import httpx
from pydantic import BaseModel, ConfigDict

from src.config import LoggerSettings

USER_AGENT = "wu-current-logger/0.1"


class LoggerDeps(BaseModel):
    """Dependencies injected into each sampling cycle."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: LoggerSettings
    http_client: httpx.AsyncClient


def create_http_client() -> httpx.AsyncClient:
    """Create the shared httpx client.

    Retries and per-attempt timeouts are applied by the weather service, not the
    transport, so that each failed attempt can be reported on its own.
    """
    return httpx.AsyncClient(headers={"User-Agent": USER_AGENT}, follow_redirects=True)
