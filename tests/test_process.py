from __future__ import annotations

import sys
from pathlib import Path

import pytest

from codevis.errors import ExternalToolError
from codevis.ingestion.cloner import GitCloner
from codevis.infra.process import run_tool

pytestmark = pytest.mark.anyio


async def test_run_tool_returns_stdout() -> None:
    result = await run_tool([sys.executable, "-c", "print('hello')"], timeout=10)
    assert result.stdout.decode().strip() == "hello"


async def test_run_tool_non_zero_exit_raises() -> None:
    with pytest.raises(ExternalToolError):
        await run_tool([sys.executable, "-c", "import sys; sys.exit(3)"], timeout=10)


async def test_run_tool_timeout_raises() -> None:
    with pytest.raises(ExternalToolError):
        await run_tool([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)


async def test_run_tool_missing_binary_raises() -> None:
    with pytest.raises(ExternalToolError):
        await run_tool(["definitely-not-a-real-binary-xyz"], timeout=5)


async def test_run_tool_closes_stdin() -> None:
    result = await run_tool([sys.executable, "-c", "import sys; print(len(sys.stdin.read()))"], timeout=10)
    assert result.stdout.decode().strip() == "0"


async def test_git_cloner_missing_git_raises(tmp_path: Path) -> None:
    cloner = GitCloner(base_dir=str(tmp_path / "repos"), git_bin="definitely-not-git-xyz", timeout_seconds=5)
    with pytest.raises(ExternalToolError):
        await cloner.clone("git@example.com:u/r.git", "abc")
    assert (tmp_path / "repos").is_dir()
