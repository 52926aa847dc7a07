"""Virtual environment activation for child processes."""

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from pyembed.errors import NotFoundError
from pyembed.types import EmbedConfig

# Always set for children so their output streams line by line
CHILD_ENV_SETUP = {"PYTHONUNBUFFERED": "1"}


def make_activation_env(
    config: EmbedConfig, base_env: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Build the variables a shell activation of the venv would set.

    Only the overlay is returned; the caller's environment (``os.environ`` by
    default) is read for PATH but never modified.
    """
    base_env = os.environ if base_env is None else base_env
    bin_dir = config.layout.venv_bin_path(config.venv_dir)

    current_path = base_env.get("PATH", "")
    path = f"{bin_dir}{os.pathsep}{current_path}" if current_path else str(bin_dir)

    return {
        **CHILD_ENV_SETUP,
        "VIRTUAL_ENV": str(config.venv_dir),
        "PATH": path,
        "PYTHONHOME": str(config.runtime_home),
    }


def find_venv_python(config: EmbedConfig) -> Path:
    """Locate the interpreter inside the environment's venv."""
    candidates = config.layout.interpreter_candidates(config.venv_dir)
    for candidate in candidates:
        if candidate.exists():
            return candidate

    raise NotFoundError("Virtual environment interpreter", candidates[0])
