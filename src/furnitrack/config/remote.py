"""Remote record store (Airtable) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

AIRTABLE_BASE_URL = "https://api.airtable.com/v0/"
AIRTABLE_TIMEOUT_SECONDS = 20.0
DEFAULT_SYNC_SOURCE = "app"


@dataclass(frozen=True)
class RemoteConfig:
    """Holds the remote table coordinates and credentials."""

    token: str
    base_id: str
    table_id: str
    view: str | None
    sync_source: str
    resilience: ResilienceConfig

    @property
    def table_path(self) -> str:
        return f"{self.base_id}/{self.table_id}"


def default_remote_resilience() -> ResilienceConfig:
    return ResilienceConfig(
        name="airtable",
        base_url=AIRTABLE_BASE_URL,
        timeout_seconds=AIRTABLE_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
    )


def get_remote_config(*, resilience: ResilienceConfig | None = None) -> RemoteConfig:
    values = require_env_vars(("AIRTABLE_TOKEN", "AIRTABLE_BASE_ID", "AIRTABLE_TABLE_ID"))
    return RemoteConfig(
        token=values["AIRTABLE_TOKEN"],
        base_id=values["AIRTABLE_BASE_ID"],
        table_id=values["AIRTABLE_TABLE_ID"],
        view=optional_env_var("AIRTABLE_VIEW_NAME", "AIRTABLE_VIEW_ID"),
        sync_source=optional_env_var("AIRTABLE_SYNC_SOURCE") or DEFAULT_SYNC_SOURCE,
        resilience=resilience or default_remote_resilience(),
    )
