"""
Ingestion Coordinator（提交流程编排）。

一次提交的固定流程：
validate -> persist（唯一约束去重）-> Cloning -> git clone -> Done / Failed

注意：
- 去重只依赖存储层的唯一约束（不做预查询），并发提交同一 URI 时只有一个能进入 Cloning
- clone 失败不会删除已插入的记录，也不会重试
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Protocol

import anyio

from codevis.errors import ErrorInfo
from codevis.errors import ExternalToolError
from codevis.errors import InvalidURIError
from codevis.errors import RepositoryConflictError
from codevis.errors import StorageError
from codevis.ingestion.models import JobEvent
from codevis.ingestion.validator import ensure_valid_uri
from codevis.storage.memory import RepositoryStore

logger = logging.getLogger(__name__)

CONFLICT_REASON = "Repository already exists"
STORAGE_REASON = "Database error"
CLONE_REASON = "Clone failed"


class RepositoryCloner(Protocol):
    async def clone(self, uri: str, repo_id: str) -> str: ...


class IngestionCoordinator:
    def __init__(self, store: RepositoryStore, cloner: RepositoryCloner) -> None:
        self._store = store
        self._cloner = cloner

    async def submit(self, uri: str) -> AsyncGenerator[JobEvent, None]:
        """跑一次提交，按阶段产出 `JobEvent`；最后一个事件一定是 Done 或 Failed。"""
        try:
            ensure_valid_uri(uri)
        except InvalidURIError as exc:
            logger.warning(f"rejected submission, not a git uri: {uri!r}")
            yield JobEvent(phase="Failed", repo_id="", error=ErrorInfo(kind="validation", message=str(exc)))
            return

        try:
            record = await anyio.to_thread.run_sync(self._store.insert, uri)
        except RepositoryConflictError as exc:
            logger.info(f"submission conflicts with existing repository: id={exc.existing_id} uri={uri}")
            yield JobEvent(
                phase="Failed",
                repo_id=exc.existing_id,
                error=ErrorInfo(kind="conflict", message=CONFLICT_REASON),
            )
            return
        except StorageError as exc:
            logger.error(f"could not persist repository: uri={uri}: {exc}")
            yield JobEvent(phase="Failed", repo_id="", error=ErrorInfo(kind="storage", message=STORAGE_REASON))
            return

        yield JobEvent(phase="Cloning", repo_id=record.id)

        try:
            await self._cloner.clone(record.uri, record.id)
        except ExternalToolError as exc:
            logger.error(f"clone failed: id={record.id} uri={record.uri}: {exc}")
            yield JobEvent(phase="Failed", repo_id=record.id, error=ErrorInfo(kind="external_tool", message=CLONE_REASON))
            return

        logger.info(f"repository ready: id={record.id}")
        yield JobEvent(phase="Done", repo_id=record.id)
