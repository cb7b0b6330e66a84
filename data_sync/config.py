"""
Settings for the data sync layer.

Defaults match the names the console has always used; each can be
overridden from the environment for side-by-side deployments on one origin.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from storefront.data_store import DEFAULT_DATA_DIR


DEFAULT_CHANNEL_NAME = "laroza-data-sync"
DEFAULT_ENVELOPE_KEY = "laroza-sync-event"


class SyncSettings(BaseModel):
    """Names shared by every tab that should see each other's changes."""
    channel_name: str = Field(default=DEFAULT_CHANNEL_NAME, min_length=1)
    envelope_key: str = Field(default=DEFAULT_ENVELOPE_KEY, min_length=1)
    data_dir: Path = DEFAULT_DATA_DIR

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "SyncSettings":
        """
        Build settings from LAROZA_SYNC_CHANNEL, LAROZA_SYNC_ENVELOPE_KEY
        and LAROZA_DATA_DIR, falling back to the defaults.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        if environ.get("LAROZA_SYNC_CHANNEL"):
            overrides["channel_name"] = environ["LAROZA_SYNC_CHANNEL"]
        if environ.get("LAROZA_SYNC_ENVELOPE_KEY"):
            overrides["envelope_key"] = environ["LAROZA_SYNC_ENVELOPE_KEY"]
        if environ.get("LAROZA_DATA_DIR"):
            overrides["data_dir"] = Path(environ["LAROZA_DATA_DIR"])
        return cls(**overrides)
