"""Core type definitions"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional, Tuple, Union

from pyembed.errors import InvalidArgumentError, MissingArgumentError
from pyembed.runtimes.platforms import PlatformLayout, get_platform_layout

OutputCallback = Callable[[str], None]
ProcessStartedCallback = Callable[[asyncio.subprocess.Process], None]

VENV_NAME = "venv"

_QUOTE_TRIGGERS = ('"', "'")


def quote_argument(token: str) -> str:
    """Double-quote a token containing whitespace or quote characters."""
    if token and not any(c.isspace() or c in _QUOTE_TRIGGERS for c in token):
        return token
    return '"' + token.replace('"', '\\"') + '"'


@dataclass(frozen=True)
class EmbedConfig:
    """Location and source of one embedded runtime"""

    root: Path
    distribution_url: Optional[str] = None
    layout: PlatformLayout = field(default_factory=get_platform_layout)

    def __post_init__(self):
        if self.root is None:
            raise MissingArgumentError("root")
        if not str(self.root).strip():
            raise InvalidArgumentError("root")
        object.__setattr__(self, "root", Path(self.root).absolute())
        if not self.distribution_url:
            object.__setattr__(
                self, "distribution_url", self.layout.default_distribution_url()
            )

    @property
    def runtime_executable(self) -> Path:
        return self.layout.runtime_path(self.root)

    @property
    def runtime_home(self) -> Path:
        return self.layout.home_path(self.root)

    @property
    def venv_dir(self) -> Path:
        return self.root / VENV_NAME


@dataclass(frozen=True)
class ProcessInvocation:
    """One child process launch"""

    executable: Union[str, Path]
    arguments: Tuple[str, ...] = ()
    working_dir: Optional[Path] = None
    env_overlay: Optional[Mapping[str, str]] = None

    @property
    def command_line(self) -> str:
        return " ".join(quote_argument(str(a)) for a in self.arguments)

    def __str__(self) -> str:
        return f"{quote_argument(str(self.executable))} {self.command_line}".rstrip()
