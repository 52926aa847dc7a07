"""Bootstrap an embedded Python runtime and drive it from the host."""
from pyembed.environments.environment import EmbeddedEnvironment
from pyembed.errors import (
    DownloadError,
    EmbedError,
    InvalidArgumentError,
    MissingArgumentError,
    NotFoundError,
)
from pyembed.processes.runner import run_process, skip_blank, terminate_process_tree
from pyembed.types import EmbedConfig, ProcessInvocation

__all__ = [
    "EmbeddedEnvironment",
    "EmbedConfig",
    "ProcessInvocation",
    "run_process",
    "skip_blank",
    "terminate_process_tree",
    "EmbedError",
    "InvalidArgumentError",
    "MissingArgumentError",
    "NotFoundError",
    "DownloadError",
]
