from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from pageink.ink.recorder import PenStyle


class Settings(BaseSettings):
    """
    Runtime config.

    - Loaded from environment variables (`PAGEINK_*`)
    - Also reads `.env` if present (via pydantic-settings + python-dotenv)
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="PAGEINK_", extra="ignore")

    # Fixed pen style for every stroke in the process
    pen_color: str = "#0b57d0"
    pen_width: float = 2.5

    # Capability filter: only accept pointer_type == "pen"
    pen_only: bool = False

    # Folder storage root; one subfolder per exported document
    export_root: str = "./exports"

    # Raster documents are scaled by this factor before inking
    render_scale: float = 1.6

    # Debugging
    debug_log_msgs: bool = False

    @property
    def pen_style(self) -> PenStyle:
        return PenStyle(color=self.pen_color, width=self.pen_width)

    @property
    def accepted_pointer_types(self) -> Optional[frozenset[str]]:
        return frozenset({"pen"}) if self.pen_only else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
