"""Unit tests for utility functions (assetflow.utils).

Tests cover:
- run_command (success, failure, timeout, env vars, cwd)
- ensure_dir / relative_to_cwd
- format_duration / format_size
- wait_for_health (unreachable port, mocked httpx)
- Rich output helpers
"""

from __future__ import annotations

import socket
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from assetflow.utils import (
    ensure_dir,
    format_duration,
    format_size,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
    relative_to_cwd,
    run_command,
    wait_for_health,
)


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command(self):
        returncode, stdout, _stderr = await run_command([sys.executable, "-c", "print('hello')"])
        assert returncode == 0
        assert stdout == "hello"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, _stdout, _stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.exit(3)"]
        )
        assert returncode == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stderr_captured(self):
        _returncode, _stdout, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom\\n')"]
        )
        assert stderr == "boom"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout(self):
        returncode, _stdout, stderr = await run_command(
            [sys.executable, "-c", "import time; time.sleep(10)"], timeout=1
        )
        assert returncode == -1
        assert "timed out" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_env_and_cwd(self, tmp_path: Path):
        returncode, stdout, _stderr = await run_command(
            [sys.executable, "-c", "import os; print(os.environ['AF_TEST'] + '|' + os.getcwd())"],
            cwd=tmp_path,
            env={"AF_TEST": "value"},
        )
        assert returncode == 0
        value, cwd = stdout.split("|", 1)
        assert value == "value"
        assert Path(cwd).resolve() == tmp_path.resolve()


class TestFileHelpers:
    @pytest.mark.unit
    def test_ensure_dir_creates_nested(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "c"
        result = ensure_dir(target)
        assert target.is_dir()
        assert result == target.resolve()

    @pytest.mark.unit
    def test_ensure_dir_existing(self, tmp_path: Path):
        assert ensure_dir(tmp_path) == tmp_path.resolve()

    @pytest.mark.unit
    def test_relative_to_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        assert relative_to_cwd(tmp_path / "dist" / "css") == str(Path("dist") / "css")

    @pytest.mark.unit
    def test_relative_to_cwd_outside(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        (tmp_path / "cwd").mkdir()
        monkeypatch.chdir(tmp_path / "cwd")
        outside = tmp_path / "other"
        assert relative_to_cwd(outside) == str(outside)


class TestFormatting:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "seconds, expected",
        [(0.042, "42ms"), (3.7, "3.7s"), (65.2, "1m 5s"), (-1, "0ms")],
    )
    def test_format_duration(self, seconds: float, expected: str):
        assert format_duration(seconds) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "num_bytes, expected",
        [(512, "512 B"), (1536, "1.5 KB"), (2 * 1024 * 1024, "2.0 MB")],
    )
    def test_format_size(self, num_bytes: int, expected: str):
        assert format_size(num_bytes) == expected


class TestWaitForHealth:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unreachable_returns_false(self):
        url = f"http://127.0.0.1:{_free_port()}/"
        assert await wait_for_health(url, timeout=0.5, interval=0.1) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ok_response(self):
        response = MagicMock(status_code=200)
        client = AsyncMock()
        client.get.return_value = response
        client.__aenter__.return_value = client
        client.__aexit__.return_value = False

        with patch("assetflow.utils.httpx.AsyncClient", return_value=client):
            assert await wait_for_health("http://localhost:1/", timeout=1) is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_server_errors_keep_polling(self):
        client = AsyncMock()
        client.get.side_effect = [
            httpx.ConnectError("refused"),
            MagicMock(status_code=503),
            MagicMock(status_code=404),
        ]
        client.__aenter__.return_value = client
        client.__aexit__.return_value = False

        with patch("assetflow.utils.httpx.AsyncClient", return_value=client):
            assert await wait_for_health("http://localhost:1/", timeout=5, interval=0.01) is True
        assert client.get.await_count == 3


class TestRichHelpers:
    @pytest.mark.unit
    def test_helpers_do_not_raise(self):
        print_step_header("styles")
        print_step_header("unknown")
        print_summary_table([("styles", "1")], headers=("Step", "Written"))
        print_success("ok")
        print_warning("careful")
        print_error("bad")
