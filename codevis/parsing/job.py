from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing

import anyio

from codevis.errors import EnumerationError
from codevis.errors import ErrorInfo
from codevis.errors import RepositoryNotFoundError
from codevis.errors import StorageError
from codevis.parsing.dispatcher import ParseDispatcher
from codevis.parsing.file_scanner import list_repo_files
from codevis.parsing.models import ProgressEvent
from codevis.storage.memory import RepositoryStore

logger = logging.getLogger(__name__)


class ParseJob:
    """一次 parse 请求：查记录 -> 枚举文件 -> 受理 -> 逐文件分析。"""

    def __init__(self, store: RepositoryStore, dispatcher: ParseDispatcher, repo_root: str) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._repo_root = repo_root

    async def run(self, repo_id: str) -> AsyncGenerator[ProgressEvent, None]:
        try:
            record = await anyio.to_thread.run_sync(self._store.find_by_id, repo_id)
        except RepositoryNotFoundError as exc:
            logger.warning(f"parse requested for unknown repository: id={repo_id}")
            yield ProgressEvent(phase="Failed", repo_id=repo_id, error=ErrorInfo(kind="not_found", message=str(exc)))
            return
        except StorageError as exc:
            logger.error(f"repository lookup failed: id={repo_id}: {exc}")
            yield ProgressEvent(phase="Failed", repo_id=repo_id, error=ErrorInfo(kind="storage", message=str(exc)))
            return

        try:
            files = await anyio.to_thread.run_sync(list_repo_files, self._repo_root, record.id)
        except EnumerationError as exc:
            logger.error(f"could not enumerate repository files: id={record.id}: {exc}")
            yield ProgressEvent(phase="Failed", repo_id=repo_id, error=ErrorInfo(kind="enumeration", message=str(exc)))
            return

        yield ProgressEvent(phase="Parsing", repo_id=repo_id, file_count=len(files))
        async with aclosing(self._dispatcher.parse(repo_id, files)) as events:
            async for event in events:
                yield event
