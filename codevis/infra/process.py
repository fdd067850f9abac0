from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence

import anyio

from codevis.errors import ExternalToolError

logger = logging.getLogger(__name__)


async def run_tool(
    cmd: Sequence[str],
    timeout: float,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """
    运行一个外部进程（git / wc / analyzer），统一做超时与错误转换。

    - stdin 传空输入并立即关闭，避免进程等待交互输入
    - 超时后进程被取消（anyio 会 kill 子进程）
    - 非 0 退出码 / 超时 / 找不到可执行文件 -> `ExternalToolError`
    """
    if timeout <= 0:
        raise ValueError("timeout must be > 0")
    merged_env = None
    if env is not None:
        merged_env = {**os.environ, **env}
    try:
        with anyio.fail_after(timeout):
            result = await anyio.run_process(list(cmd), input=b"", check=False, cwd=cwd, env=merged_env)
    except TimeoutError as exc:
        logger.error(f"command timed out after {timeout}s: {' '.join(cmd)}")
        raise ExternalToolError(f"command timed out: {' '.join(cmd)}") from exc
    except OSError as exc:
        logger.error(f"command could not start: {' '.join(cmd)}: {exc}")
        raise ExternalToolError(f"command could not start: {' '.join(cmd)}") from exc

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace") if result.stderr else ""
        logger.error(f"command failed ({result.returncode}): {' '.join(cmd)}\nstderr={stderr}")
        raise ExternalToolError(f"command failed with exit code {result.returncode}: {' '.join(cmd)}")
    return result
