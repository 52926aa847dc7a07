"""Tests for archive download and extraction."""

import asyncio
import io
import tarfile
import zipfile

import pytest
import pytest_asyncio
import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from pyembed.errors import DownloadError, UnsupportedArchiveError
from pyembed.runtimes.fetching import (
    DOWNLOAD_TIMEOUT,
    archive_format,
    download_url,
    extract_archive,
)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("python-3.12.10-embed-amd64.zip", ".zip"),
        ("cpython-3.12.10+20250409-x86_64-unknown-linux-gnu-install_only.tar.gz", ".tar.gz"),
        ("bundle.TGZ", ".tgz"),
        ("https://example.com/dist/python.zip?token=abc", ".zip"),
        ("python.tar.xz", None),
        ("README", None),
    ],
)
def test_archive_format(name, expected):
    assert archive_format(name) == expected


def test_extract_zip(tmp_path):
    archive = tmp_path / "python-3.12.10-embed-amd64.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("python.exe", "")
        zf.writestr("python312._pth", "#import site\n")

    dest = tmp_path / "runtime"
    assert extract_archive(archive, dest) == dest

    assert (dest / "python.exe").exists()
    assert (dest / "python312._pth").read_text() == "#import site\n"


def test_extract_tar_gz(tmp_path):
    archive = tmp_path / "python.tar.gz"
    payload = b"#!/bin/sh\n"
    with tarfile.open(archive, "w:gz") as tf:
        info = tarfile.TarInfo("python/bin/python3")
        info.size = len(payload)
        tf.addfile(info, io.BytesIO(payload))

    dest = tmp_path / "runtime"
    extract_archive(archive, dest)

    assert (dest / "python" / "bin" / "python3").read_bytes() == payload


def test_extract_overwrites_existing_files(tmp_path):
    archive = tmp_path / "code.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("main.py", "new")

    dest = tmp_path / "out"
    dest.mkdir()
    (dest / "main.py").write_text("old")

    extract_archive(archive, dest)
    assert (dest / "main.py").read_text() == "new"


def test_extract_unsupported(tmp_path):
    archive = tmp_path / "python.7z"
    archive.write_bytes(b"")

    with pytest.raises(UnsupportedArchiveError):
        extract_archive(archive, tmp_path / "out")


@pytest_asyncio.fixture
async def file_server():
    async def get_pip(request):
        return web.Response(body=b"print('installing pip')\n")

    async def missing(request):
        return web.Response(status=404)

    async def stalled(request):
        response = web.StreamResponse(headers={"Content-Length": "1048576"})
        await response.prepare(request)
        await response.write(b"partial")
        await asyncio.sleep(2)
        return response

    app = web.Application()
    app.router.add_get("/get-pip.py", get_pip)
    app.router.add_get("/missing.zip", missing)
    app.router.add_get("/stalled.zip", stalled)

    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest.mark.asyncio
async def test_download_url(file_server, tmp_path):
    dest = tmp_path / "get-pip.py"

    await download_url(str(file_server.make_url("/get-pip.py")), dest)

    assert dest.read_bytes() == b"print('installing pip')\n"


@pytest.mark.asyncio
async def test_download_url_error_status(file_server, tmp_path):
    dest = tmp_path / "missing.zip"

    with pytest.raises(DownloadError) as exc:
        await download_url(str(file_server.make_url("/missing.zip")), dest)

    assert exc.value.status == 404
    assert not dest.exists()


@pytest.mark.asyncio
async def test_download_url_connection_error(tmp_path):
    dest = tmp_path / "python.zip"

    with pytest.raises(DownloadError):
        await download_url("http://127.0.0.1:1/python.zip", dest)

    assert not dest.exists()


@pytest.mark.asyncio
async def test_download_url_stalled_transfer(file_server, tmp_path):
    dest = tmp_path / "stalled.zip"
    timeout = aiohttp.ClientTimeout(total=None, sock_read=0.2)

    with pytest.raises(DownloadError, match="timed out"):
        await download_url(str(file_server.make_url("/stalled.zip")), dest, timeout)

    assert not dest.exists()


@pytest.mark.asyncio
async def test_download_url_unwritable_destination(file_server, tmp_path):
    dest = tmp_path / "no-such-dir" / "get-pip.py"

    with pytest.raises(DownloadError):
        await download_url(str(file_server.make_url("/get-pip.py")), dest)

    assert not dest.exists()


def test_default_timeout_has_no_total_cap():
    assert DOWNLOAD_TIMEOUT.total is None
    assert DOWNLOAD_TIMEOUT.sock_read
    assert DOWNLOAD_TIMEOUT.sock_connect
