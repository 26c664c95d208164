from __future__ import annotations

import os
from dataclasses import dataclass, field, replace

from .constants import HANDOFF_FRAGMENT, HOME_URL, METADATA_API_URL
from .models import SetupTimings


@dataclass(frozen=True)
class AutoSetupConfig:
    """
    Orchestrator configuration.

    The timing table is the only place step delays and deadlines are defined;
    phases read it from the run instead of hard-coding values.
    """

    home_url: str = HOME_URL
    handoff_fragment: str = HANDOFF_FRAGMENT
    metadata_api_url: str = METADATA_API_URL

    # How long a superseded run gets to observe its token before we await it.
    cancel_grace_s: float = 0.1

    timings: SetupTimings = field(default_factory=SetupTimings)

    @classmethod
    def from_env(cls, **overrides) -> AutoSetupConfig:
        """
        Build a config from environment variables.

        MIRRORBAST_HOME_URL        lobby site (default https://karabast.net)
        MIRRORBAST_TIMING_SCALE    multiply every delay/timeout (e.g. 2 on slow machines)
        """
        config = cls(**overrides)
        home = os.environ.get("MIRRORBAST_HOME_URL", "").strip()
        if home:
            config = replace(config, home_url=home.rstrip("/"))
        scale = os.environ.get("MIRRORBAST_TIMING_SCALE", "").strip()
        if scale:
            try:
                factor = float(scale)
            except ValueError as exc:
                raise ValueError(f"MIRRORBAST_TIMING_SCALE must be a number, got {scale!r}") from exc
            config = replace(config, timings=config.timings.scaled(factor))
        return config

    def is_home(self, url: str | None) -> bool:
        """True when `url` is already somewhere under the lobby site."""
        if not url:
            return False
        base = self.home_url.rstrip("/")
        return url == base or url.startswith(base + "/")
