"""CUDA version detection."""

import os
import re
import shutil
from typing import List, Mapping, Optional

from pyembed.logging import get_logger
from pyembed.processes.runner import run_process
from pyembed.types import OutputCallback, ProcessInvocation

logger = get_logger(__name__)

CUDA_TAG_PREFIX = "cu"
CUDA_VERSION_ENV = "CUDA_VERSION"
DIAGNOSTIC_TOOL = "nvidia-smi"

_SMI_VERSION = re.compile(r"CUDA Version:\s*(\d+)\.(\d+)", re.IGNORECASE)
_LEADING_VERSION = re.compile(r"^(\d+)(?:\.(\d+))?")


def normalize_cuda_tag(value: str) -> str:
    """Turn ``12.6``, ``12``, ``cu126`` and friends into a ``cuXYZ`` tag."""
    value = value.strip().lower()
    if value.startswith(CUDA_TAG_PREFIX):
        return value

    match = _LEADING_VERSION.match(value)
    if match:
        major, minor = match.groups()
        return f"{CUDA_TAG_PREFIX}{major}{minor or '0'}"

    return value


def parse_smi_output(output: str) -> Optional[str]:
    """Extract the CUDA tag from ``nvidia-smi`` output."""
    match = _SMI_VERSION.search(output)
    if not match:
        return None
    major, minor = match.groups()
    return f"{CUDA_TAG_PREFIX}{major}{minor}"


async def detect_cuda_tag(
    on_error: OutputCallback,
    runner=run_process,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """Probe the host for a CUDA tag, or return None if there is none.

    The driver's diagnostic tool is asked first. When it is missing, fails or
    reports no version, the ``CUDA_VERSION`` environment variable is used.
    """
    environ = os.environ if environ is None else environ

    try:
        tool = shutil.which(DIAGNOSTIC_TOOL)
        if tool:
            lines: List[str] = []
            returncode = await runner(
                ProcessInvocation(tool), lines.append, lambda _: None
            )
            if returncode == 0:
                tag = parse_smi_output("\n".join(lines))
                if tag:
                    logger.info("cuda_detected", tag=tag, source=DIAGNOSTIC_TOOL)
                    return tag
            else:
                logger.debug("cuda_probe_failed", returncode=returncode)

        override = environ.get(CUDA_VERSION_ENV, "").strip()
        if override:
            tag = normalize_cuda_tag(override)
            logger.info("cuda_detected", tag=tag, source=CUDA_VERSION_ENV)
            return tag

    except Exception as e:
        logger.warning("cuda_detection_error", error=str(e))
        on_error(f"CUDA detection failed: {e}")
        return None

    logger.info("cuda_not_detected")
    return None
