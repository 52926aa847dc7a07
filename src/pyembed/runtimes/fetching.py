"""Archive download and extraction."""
import asyncio
import tarfile
import zipfile
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import aiohttp

from pyembed.errors import DownloadError, UnsupportedArchiveError
from pyembed.logging import get_logger

logger = get_logger(__name__)

ARCHIVE_FORMATS = (".tar.gz", ".tgz", ".zip")

# Connect and per-read limits only; a large download may take as long as it needs
DOWNLOAD_TIMEOUT = aiohttp.ClientTimeout(total=None, sock_connect=30, sock_read=60)


def archive_format(name: str) -> Optional[str]:
    """Archive suffix of a file name or URL, if it is one we can extract."""
    path = urlparse(name).path if "://" in name else name
    lowered = path.lower()
    for suffix in ARCHIVE_FORMATS:
        if lowered.endswith(suffix):
            return suffix
    return None


async def download_url(
    url: str, dest: Path, timeout: aiohttp.ClientTimeout = DOWNLOAD_TIMEOUT
) -> None:
    """Download a URL to a local file, raising on a non-success status.

    There is no overall deadline, only connect and per-read limits, so a slow
    but live transfer of a large distribution is allowed to finish. On any
    failure the partial file is removed and ``DownloadError`` is raised.
    """
    logger.debug("download_started", url=url, dest=str(dest))
    size = 0
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    raise DownloadError(
                        url, f"status {response.status}", status=response.status
                    )

                with open(dest, "wb") as f:
                    async for chunk in response.content.iter_chunked(8192):
                        f.write(chunk)
                        size += len(chunk)

    except DownloadError:
        dest.unlink(missing_ok=True)
        raise
    except asyncio.TimeoutError as e:
        dest.unlink(missing_ok=True)
        raise DownloadError(url, "timed out") from e
    except (aiohttp.ClientError, OSError) as e:
        dest.unlink(missing_ok=True)
        raise DownloadError(url, str(e) or e.__class__.__name__) from e

    logger.info("download_complete", url=url, dest=str(dest), size=size)


def extract_archive(archive_path: Path, dest_dir: Path) -> Path:
    """Extract an archive into a directory, overwriting existing files."""
    format = archive_format(archive_path.name)
    logger.debug("extract_archive", archive=str(archive_path), format=format)

    if format == ".zip":
        with zipfile.ZipFile(archive_path) as archive:
            archive.extractall(dest_dir)
    elif format in (".tar.gz", ".tgz"):
        with tarfile.open(archive_path) as archive:
            archive.extractall(dest_dir, filter="data")
    else:
        raise UnsupportedArchiveError(archive_path)

    logger.info(
        "archive_extracted", archive=str(archive_path), extracted_to=str(dest_dir)
    )
    return dest_dir
