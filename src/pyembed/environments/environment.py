"""Embedded environment lifecycle management."""

import shlex
import shutil
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from pyembed.environments.activation import find_venv_python, make_activation_env
from pyembed.errors import InvalidArgumentError, MissingArgumentError, NotFoundError
from pyembed.logging import get_logger
from pyembed.packages.cuda import detect_cuda_tag, normalize_cuda_tag
from pyembed.packages.specifiers import pytorch_index_url, torch_package_set
from pyembed.processes.runner import run_process
from pyembed.runtimes.bootstrap import bootstrap_runtime
from pyembed.runtimes.fetching import download_url, extract_archive
from pyembed.types import (
    EmbedConfig,
    OutputCallback,
    ProcessInvocation,
    ProcessStartedCallback,
)

logger = get_logger(__name__)

# Returned by operations that fail without running anything
FAILURE = -1

PathLike = Union[str, Path]


def _log_stdout(line: str) -> None:
    logger.info("child_stdout", line=line)


def _log_stderr(line: str) -> None:
    logger.warning("child_stderr", line=line)


def _require_path(name: str, value: Optional[PathLike]) -> Path:
    if value is None:
        raise MissingArgumentError(name)
    if not str(value).strip():
        raise InvalidArgumentError(name)
    return Path(value).absolute()


class EmbeddedEnvironment:
    """An embedded Python runtime plus venv rooted at one directory.

    The collaborators (process runner, downloader, extractor, CUDA detector)
    can be swapped out; by default they spawn real processes and hit the
    network.
    """

    def __init__(
        self,
        config: EmbedConfig,
        runner=run_process,
        downloader=download_url,
        extractor=extract_archive,
        detector=detect_cuda_tag,
    ):
        self.config = config
        self.runner = runner
        self.downloader = downloader
        self.extractor = extractor
        self.detector = detector

    @property
    def root(self) -> Path:
        return self.config.root

    async def initialize(
        self,
        on_output: OutputCallback = _log_stdout,
        on_error: OutputCallback = _log_stderr,
    ) -> int:
        """Bootstrap the runtime and venv if they are not there yet."""
        return await bootstrap_runtime(
            self.config,
            on_output,
            on_error,
            runner=self.runner,
            downloader=self.downloader,
            extractor=self.extractor,
        )

    async def _run_in_venv(
        self,
        arguments: Sequence[str],
        working_dir: Optional[Path],
        on_output: OutputCallback,
        on_error: OutputCallback,
        on_process_started: Optional[ProcessStartedCallback] = None,
    ) -> int:
        if working_dir is None or not str(working_dir).strip():
            working_dir = self.root

        invocation = ProcessInvocation(
            find_venv_python(self.config),
            tuple(arguments),
            working_dir=Path(working_dir),
            env_overlay=make_activation_env(self.config),
        )
        logger.info("venv_exec", command=str(invocation), cwd=str(working_dir))
        return await self.runner(invocation, on_output, on_error, on_process_started)

    async def install_requirements(
        self,
        manifest: PathLike,
        on_output: OutputCallback = _log_stdout,
        on_error: OutputCallback = _log_stderr,
    ) -> int:
        """``pip install -r`` a requirements file into the venv."""
        manifest = _require_path("manifest", manifest)
        if not manifest.is_file():
            raise NotFoundError("Requirements file", manifest)

        return await self._run_in_venv(
            ("-m", "pip", "install", "-r", str(manifest)), None, on_output, on_error
        )

    async def install_editable(
        self,
        project_dir: PathLike,
        on_output: OutputCallback = _log_stdout,
        on_error: OutputCallback = _log_stderr,
    ) -> int:
        """``pip install -e .`` a local project into the venv.

        Whether the directory holds a buildable project is left to pip.
        """
        project_dir = _require_path("project_dir", project_dir)
        return await self._run_in_venv(
            ("-m", "pip", "install", "-e", "."), project_dir, on_output, on_error
        )

    async def install_packages(
        self,
        packages: Optional[Iterable[str]],
        index_url: Optional[str] = None,
        on_output: OutputCallback = _log_stdout,
        on_error: OutputCallback = _log_stderr,
    ) -> int:
        """``pip install`` the given specifiers, optionally from another index."""
        if packages is None:
            raise MissingArgumentError("packages")
        if isinstance(packages, str):
            packages = [packages]

        specifiers = [p.strip() for p in packages if p and p.strip()]
        if not specifiers:
            raise InvalidArgumentError("packages", "at least one package is required")

        arguments = ["-m", "pip", "install", *specifiers]
        if index_url and index_url.strip():
            arguments += ["--index-url", index_url.strip()]

        return await self._run_in_venv(arguments, None, on_output, on_error)

    async def install_torch(
        self,
        version: Optional[str] = None,
        cuda: Optional[str] = None,
        on_output: OutputCallback = _log_stdout,
        on_error: OutputCallback = _log_stderr,
    ) -> int:
        """Install torch, torchvision and torchaudio built for the host's CUDA.

        ``cuda`` overrides detection (``"12.6"`` or ``"cu126"``). Returns -1
        without running pip when no CUDA version can be determined.
        """
        if cuda and cuda.strip():
            tag = normalize_cuda_tag(cuda)
        else:
            tag = await self.detector(on_error)

        if not tag:
            logger.error("cuda_unavailable", root=str(self.root))
            on_error(
                "Could not determine the CUDA version; pass it explicitly "
                "or set CUDA_VERSION"
            )
            return FAILURE

        packages = torch_package_set(version, tag)
        logger.info("torch_install", packages=packages, cuda=tag)
        return await self.install_packages(
            packages, pytorch_index_url(tag), on_output, on_error
        )

    async def run_script(
        self,
        script: PathLike,
        args: Union[str, Sequence[str], None] = None,
        working_dir: Optional[PathLike] = None,
        on_output: OutputCallback = _log_stdout,
        on_error: OutputCallback = _log_stderr,
        on_process_started: Optional[ProcessStartedCallback] = None,
    ) -> int:
        """Run a script with the venv interpreter and return its exit code.

        ``args`` may be a list or a single command-line string. The working
        directory defaults to the script's own directory.
        """
        script = _require_path("script", script)
        if not script.is_file():
            raise NotFoundError("Script", script)

        if isinstance(args, str):
            args = shlex.split(args)

        if working_dir is None or not str(working_dir).strip():
            working_dir = script.parent

        return await self._run_in_venv(
            (str(script), *(args or ())),
            Path(working_dir),
            on_output,
            on_error,
            on_process_started,
        )

    def unpack_sources(self, archive: PathLike, destination: PathLike) -> Path:
        """Extract an archive of Python code into a directory."""
        archive = _require_path("archive", archive)
        destination = _require_path("destination", destination)
        if not archive.is_file():
            raise NotFoundError("Archive", archive)

        destination.mkdir(parents=True, exist_ok=True)
        return self.extractor(archive, destination)

    def remove(self, on_error: OutputCallback = _log_stderr) -> int:
        """Delete the whole environment root. Returns 0, or -1 on failure."""
        try:
            if self.root.exists():
                shutil.rmtree(self.root)
            logger.info("environment_removed", root=str(self.root))
            return 0
        except Exception as e:
            logger.error("environment_remove_failed", root=str(self.root), error=str(e))
            on_error(f"Failed to remove {self.root}: {e}")
            return FAILURE
