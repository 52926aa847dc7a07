import pytest
from pathlib import Path
from typing import List, Optional

from pyembed.environments.environment import EmbeddedEnvironment
from pyembed.runtimes.platforms import get_platform_layout
from pyembed.types import EmbedConfig, ProcessInvocation

TEST_DISTRIBUTION_URL = "https://example.com/python-3.12.10-embed-amd64.zip"


class RecordingRunner:
    """Stands in for run_process; records every invocation."""

    def __init__(self, returncodes: Optional[List[int]] = None, stdout: Optional[List[str]] = None):
        self.calls: List[ProcessInvocation] = []
        self.returncodes = list(returncodes or [])
        self.stdout = stdout or []
        self.started = []

    async def __call__(self, invocation, on_stdout, on_stderr, on_process_started=None):
        self.calls.append(invocation)
        for line in self.stdout:
            on_stdout(line)
        if on_process_started:
            handle = object()
            self.started.append(handle)
            on_process_started(handle)
        return self.returncodes.pop(0) if self.returncodes else 0


class RecordingDownloader:
    def __init__(self):
        self.calls = []

    async def __call__(self, url: str, dest: Path) -> None:
        self.calls.append((url, dest))
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(b"")


class FakeExtractor:
    """Lays down the runtime executable and a ._pth file like a real archive."""

    def __init__(self, config: EmbedConfig):
        self.config = config
        self.calls = []

    def __call__(self, archive: Path, dest: Path) -> Path:
        self.calls.append((archive, dest))
        runtime = self.config.runtime_executable
        runtime.parent.mkdir(parents=True, exist_ok=True)
        runtime.write_text("")
        (dest / "python312._pth").write_text("python312.zip\n.\n\n# Uncomment to run site.main() automatically\n#import site\n")
        return dest


@pytest.fixture
def layout():
    return get_platform_layout("Linux")


@pytest.fixture
def config(tmp_path: Path, layout) -> EmbedConfig:
    return EmbedConfig(
        root=tmp_path / "python-runtime",
        distribution_url=TEST_DISTRIBUTION_URL,
        layout=layout,
    )


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def downloader():
    return RecordingDownloader()


@pytest.fixture
def extractor(config):
    return FakeExtractor(config)


@pytest.fixture
def venv_python(config: EmbedConfig) -> Path:
    """Create a placeholder venv interpreter so commands can be built."""
    python = config.layout.interpreter_candidates(config.venv_dir)[0]
    python.parent.mkdir(parents=True, exist_ok=True)
    python.write_text("")
    return python


@pytest.fixture
def environment(config, runner, downloader, extractor):
    async def no_cuda(on_error):
        return None

    yield EmbeddedEnvironment(
        config,
        runner=runner,
        downloader=downloader,
        extractor=extractor,
        detector=no_cuda,
    )
