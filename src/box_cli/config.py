"""Runtime configuration read from the environment."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel

ENV_PREFIX = "BOX_CLI_"


def _flag(value: str | None) -> bool:
    return bool(value) and value.strip().lower() not in ("0", "false", "no", "off")


class RuntimeConfig(BaseModel):
    """Switches that change how box-cli touches the outside world.

    Test and debug mode both keep runs hermetic: no dependency installation,
    no real version checks, no process exit on failure (test mode only).
    """
    test_mode: bool = False
    debug_mode: bool = False
    config_path: Path | None = None
    skip_dirty_git_prompt: bool = False
    log_level: str = "INFO"
    log_file: Path | None = None

    @property
    def is_test_or_debug(self) -> bool:
        return self.test_mode or self.debug_mode

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RuntimeConfig:
        """Build the configuration from ``BOX_CLI_*`` environment variables."""
        env = os.environ if environ is None else environ
        config_path = env.get(f"{ENV_PREFIX}CONFIG_PATH")
        log_file = env.get(f"{ENV_PREFIX}LOG_FILE")
        return cls(
            test_mode=_flag(env.get(f"{ENV_PREFIX}TEST")),
            debug_mode=_flag(env.get(f"{ENV_PREFIX}DEBUG")),
            config_path=Path(config_path) if config_path else None,
            skip_dirty_git_prompt=_flag(env.get(f"{ENV_PREFIX}SKIP_DIRTY_GIT_PROMPT")),
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO"),
            log_file=Path(log_file) if log_file else None,
        )
