from __future__ import annotations

import logging
import os

from codevis.errors import EnumerationError

logger = logging.getLogger(__name__)

VCS_METADATA_DIR = ".git"


def repo_dir(repo_root: str, repo_id: str) -> str:
    if not repo_id:
        raise ValueError("repo_id must not be empty")
    return os.path.join(os.path.abspath(repo_root), repo_id)


def list_repo_files(repo_root: str, repo_id: str) -> list[str]:
    """
    列出仓库目录下所有普通文件的绝对路径（按目录遍历顺序，目录/文件名排序）。

    排除 `.git` 目录；根目录不存在或任何子目录不可读都抛 `EnumerationError`
    （不接受部分列表）。
    """
    root = repo_dir(repo_root=repo_root, repo_id=repo_id)
    if not os.path.isdir(root):
        raise EnumerationError(f"Repository directory does not exist: {root}")

    def _raise(exc: OSError) -> None:
        raise EnumerationError(f"Could not list repository files under {root}: {exc}") from exc

    files: list[str] = []
    for current, dirs, filenames in os.walk(root, onerror=_raise):
        dirs[:] = sorted(d for d in dirs if d != VCS_METADATA_DIR)
        for name in sorted(filenames):
            path = os.path.join(current, name)
            if os.path.isfile(path):
                files.append(path)
    logger.info(f"enumerated {len(files)} files under {root}")
    return files
