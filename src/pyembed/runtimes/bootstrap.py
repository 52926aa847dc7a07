"""Runtime bootstrap: distribution, pip, virtualenv."""

import shutil
import tempfile
from pathlib import Path
from typing import List

from fuuid import b58_fuuid

from pyembed.errors import log_error
from pyembed.logging import get_logger
from pyembed.processes.runner import run_process
from pyembed.runtimes.fetching import archive_format, download_url, extract_archive
from pyembed.types import VENV_NAME, EmbedConfig, OutputCallback, ProcessInvocation

logger = get_logger(__name__)

GET_PIP_URL = "https://bootstrap.pypa.io/get-pip.py"
GET_PIP_NAME = "get-pip.py"
ISOLATION_TOOL = "virtualenv"

STARTUP_CONFIG_PATTERN = "python*._pth"
COMMENTED_SITE_IMPORT = "#import site"
SITE_IMPORT = "import site"


def enable_site_imports(root: Path) -> List[Path]:
    """Uncomment ``import site`` in every ``python*._pth`` directly under root.

    The embeddable distribution ships with it commented out, which keeps
    site-packages off ``sys.path``. Returns the files that changed.
    """
    patched = []
    for pth in sorted(root.glob(STARTUP_CONFIG_PATTERN)):
        if not pth.is_file():
            continue

        # newline="" keeps the file's own line endings
        with open(pth, encoding="utf-8", newline="") as f:
            original = f.read()
        lines = original.splitlines(keepends=True)
        for i, line in enumerate(lines):
            if line.lower().startswith(COMMENTED_SITE_IMPORT):
                ending = line[len(line.rstrip("\r\n")):]
                lines[i] = SITE_IMPORT + ending

        updated = "".join(lines)
        if updated != original:
            with open(pth, "w", encoding="utf-8", newline="") as f:
                f.write(updated)
            patched.append(pth)
            logger.info("site_import_enabled", file=str(pth))

    return patched


def remove_root(root: Path) -> None:
    """Delete a partially bootstrapped root."""
    logger.warning("bootstrap_rollback", root=str(root))
    shutil.rmtree(root, ignore_errors=True)


def temporary_archive_path(url: str) -> Path:
    suffix = archive_format(url) or ".zip"
    return Path(tempfile.gettempdir()) / f"python-embed-{b58_fuuid()}{suffix}"


async def bootstrap_runtime(
    config: EmbedConfig,
    on_output: OutputCallback,
    on_error: OutputCallback,
    runner=run_process,
    downloader=download_url,
    extractor=extract_archive,
) -> int:
    """Make sure the runtime and its venv exist under ``config.root``.

    Returns 0 straight away when the runtime executable is already there.
    Otherwise downloads and unpacks the distribution, installs pip and
    virtualenv into it and creates the venv. Any failure, raised or signalled
    by a nonzero exit code, removes the root before it is reported.
    """
    root = config.root
    runtime = config.runtime_executable

    if runtime.exists():
        logger.debug("runtime_present", root=str(root), runtime=str(runtime))
        return 0

    logger.info(
        "bootstrap_started", root=str(root), distribution=config.distribution_url
    )
    archive = temporary_archive_path(config.distribution_url)

    async def run_runtime(*arguments: str) -> int:
        invocation = ProcessInvocation(runtime, tuple(arguments), working_dir=root)
        return await runner(invocation, on_output, on_error)

    try:
        root.mkdir(parents=True, exist_ok=True)

        await downloader(config.distribution_url, archive)
        extractor(archive, root)

        get_pip = root / GET_PIP_NAME
        await downloader(GET_PIP_URL, get_pip)

        step = "install_pip"
        returncode = await run_runtime(str(get_pip))

        if returncode == 0:
            enable_site_imports(root)
            step = "install_virtualenv"
            returncode = await run_runtime("-m", "pip", "install", ISOLATION_TOOL)

        if returncode == 0:
            step = "create_venv"
            returncode = await run_runtime("-m", ISOLATION_TOOL, VENV_NAME)

        if returncode != 0:
            logger.error("bootstrap_step_failed", step=step, returncode=returncode)
            on_error(f"Bootstrap step {step} failed with exit code {returncode}")
            remove_root(root)
            return returncode

    except BaseException as e:
        log_error(e, {"root": str(root), "stage": "bootstrap"}, logger)
        remove_root(root)
        raise

    finally:
        archive.unlink(missing_ok=True)

    logger.info("bootstrap_complete", root=str(root))
    return 0
