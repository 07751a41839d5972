"""
Compiler configuration.

Settings come from the environment first (KALEIDOSCOPE_DEV,
KALEIDOSCOPE_OPT_LEVEL) and command-line flags override them.

Author: xwest
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEV_MODE_ENV = "KALEIDOSCOPE_DEV"
OPT_LEVEL_ENV = "KALEIDOSCOPE_OPT_LEVEL"

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


@dataclass
class CompilerConfig:
    """Runtime settings for a compilation session and its read loop."""
    dev_mode: bool = False
    optimization_level: int = 2
    prompt: str = "ready> "
    show_prompt: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CompilerConfig":
        """
        Build a config from environment variables.

        Dev mode is on when KALEIDOSCOPE_DEV is set to anything but "0".
        """
        if environ is None:
            environ = os.environ
        config = cls()

        dev = environ.get(DEV_MODE_ENV)
        if dev is not None:
            config.dev_mode = dev != "0"

        level = environ.get(OPT_LEVEL_ENV)
        if level:
            try:
                config.optimization_level = int(level)
            except ValueError:
                raise ValueError(f"{OPT_LEVEL_ENV} must be an integer, got {level!r}")

        config.validate()
        return config

    def validate(self):
        if not 0 <= self.optimization_level <= 3:
            raise ValueError(f"Optimization level must be 0..3, got {self.optimization_level}")

    @property
    def log_level(self) -> int:
        return logging.DEBUG if self.dev_mode else logging.WARNING


def configure_logging(config: CompilerConfig):
    """Send compiler logs to stderr; dev mode turns on the DEBUG traces."""
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("kaleidoscope").setLevel(config.log_level)
