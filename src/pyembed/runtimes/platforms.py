"""Platform-specific runtime layouts."""
import platform
from pathlib import Path
from typing import Dict, NamedTuple, Optional, Tuple

from pyembed.errors import UnsupportedPlatformError

PYTHON_VERSION = "3.12.10"
STANDALONE_RELEASE = "20250409"

EMBED_URL_TEMPLATE = (
    "https://www.python.org/ftp/python/{version}/python-{version}-embed-{arch}.zip"
)
STANDALONE_URL_TEMPLATE = (
    "https://github.com/astral-sh/python-build-standalone/releases/download/"
    "{release}/cpython-{version}+{release}-{arch}-{platform}-install_only.tar.gz"
)

# Architecture names as they appear in distribution archive names
ARCH_MAPPINGS = {
    "x86_64": {"embed": "amd64", "standalone": "x86_64"},
    "aarch64": {"embed": "arm64", "standalone": "aarch64"},
    "x86": {"embed": "win32", "standalone": "i686"},
}


class PlatformLayout(NamedTuple):
    """Where things live inside an environment root on one platform."""

    system: str
    runtime_executable: str
    runtime_home: str
    venv_bin_dir: str
    venv_interpreters: Tuple[str, ...]
    url_template: str
    url_platform: str = ""
    arch_style: str = "standalone"

    def runtime_path(self, root: Path) -> Path:
        return root / self.runtime_executable

    def home_path(self, root: Path) -> Path:
        return root / self.runtime_home if self.runtime_home else root

    def venv_bin_path(self, venv_dir: Path) -> Path:
        return venv_dir / self.venv_bin_dir

    def interpreter_candidates(self, venv_dir: Path) -> Tuple[Path, ...]:
        bin_dir = self.venv_bin_path(venv_dir)
        return tuple(bin_dir / name for name in self.venv_interpreters)

    def default_distribution_url(self, machine: Optional[str] = None) -> str:
        arch = normalize_machine(machine or platform.machine())
        if arch not in ARCH_MAPPINGS:
            raise UnsupportedPlatformError(self.system, arch)
        return self.url_template.format(
            version=PYTHON_VERSION,
            release=STANDALONE_RELEASE,
            arch=ARCH_MAPPINGS[arch][self.arch_style],
            platform=self.url_platform,
        )


PLATFORM_LAYOUTS: Dict[str, PlatformLayout] = {
    "Windows": PlatformLayout(
        system="Windows",
        runtime_executable="python.exe",
        runtime_home="",
        venv_bin_dir="Scripts",
        venv_interpreters=("python.exe", "python3.exe"),
        url_template=EMBED_URL_TEMPLATE,
        arch_style="embed",
    ),
    "Linux": PlatformLayout(
        system="Linux",
        runtime_executable="python/bin/python3",
        runtime_home="python",
        venv_bin_dir="bin",
        venv_interpreters=("python", "python3"),
        url_template=STANDALONE_URL_TEMPLATE,
        url_platform="unknown-linux-gnu",
    ),
    "Darwin": PlatformLayout(
        system="Darwin",
        runtime_executable="python/bin/python3",
        runtime_home="python",
        venv_bin_dir="bin",
        venv_interpreters=("python", "python3"),
        url_template=STANDALONE_URL_TEMPLATE,
        url_platform="apple-darwin",
    ),
}


def normalize_machine(machine: str) -> str:
    """Map the many spellings of an architecture onto one name."""
    machine = machine.lower()
    if machine in ("arm64", "aarch64"):
        return "aarch64"
    if machine in ("amd64", "x86_64", "x64"):
        return "x86_64"
    if machine in ("i386", "i686", "x86"):
        return "x86"
    return machine


def get_platform_layout(system: Optional[str] = None) -> PlatformLayout:
    """Get the runtime layout for a platform (defaults to the host)."""
    if system is None:
        system = platform.system()

    if system not in PLATFORM_LAYOUTS:
        raise UnsupportedPlatformError(system)

    return PLATFORM_LAYOUTS[system]
