from __future__ import annotations

import logging
import os

from codevis.infra.process import run_tool

logger = logging.getLogger(__name__)


class GitCloner:
    """基于 git CLI 的仓库克隆器：`<root>/<repo_id>` 即仓库目录。"""

    def __init__(self, base_dir: str, git_bin: str, timeout_seconds: float) -> None:
        self._base_dir = base_dir
        self._git_bin = git_bin
        self._timeout_seconds = timeout_seconds

    async def clone(self, uri: str, repo_id: str) -> str:
        if not repo_id:
            raise ValueError("repo_id must not be empty")
        os.makedirs(self._base_dir, exist_ok=True)
        repo_dir = os.path.join(self._base_dir, repo_id)
        logger.info(f"cloning {uri} into {repo_dir}")
        # 没有凭据时直接失败，而不是卡在交互式密码提示上
        await run_tool(
            [self._git_bin, "-C", self._base_dir, "clone", uri, repo_id],
            timeout=self._timeout_seconds,
            env={"GIT_TERMINAL_PROMPT": "0", "GIT_SSH_COMMAND": "ssh -o BatchMode=yes"},
        )
        return repo_dir
