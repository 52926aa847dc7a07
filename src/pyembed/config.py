"""Configuration from the process environment."""
import os
from pathlib import Path
from typing import Mapping, Optional

import appdirs

from pyembed.types import EmbedConfig

APP_NAME = "pyembed"

ROOT_ENV = "PYEMBED_ROOT"
DISTRIBUTION_URL_ENV = "PYEMBED_DISTRIBUTION_URL"
LOG_LEVEL_ENV = "PYEMBED_LOG_LEVEL"


def default_root() -> Path:
    return Path(appdirs.user_data_dir(APP_NAME)) / "runtime"


def load_config(environ: Optional[Mapping[str, str]] = None) -> EmbedConfig:
    """Build an EmbedConfig from ``PYEMBED_*`` variables."""
    environ = os.environ if environ is None else environ

    root = environ.get(ROOT_ENV, "").strip() or default_root()
    url = environ.get(DISTRIBUTION_URL_ENV, "").strip() or None
    return EmbedConfig(root=Path(root), distribution_url=url)


def log_level(environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    return environ.get(LOG_LEVEL_ENV, "INFO").strip().upper() or "INFO"
