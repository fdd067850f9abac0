from __future__ import annotations

"""
仓库存储抽象 + 内存实现。

当前提供：
- `RepositoryStore` Protocol：insert / find_by_id / list_all
- `InMemoryRepositoryStore`：便于本地运行/单元测试（唯一约束在锁内检查）
"""

import threading
from dataclasses import dataclass, field
from typing import Protocol

from codevis.errors import RepositoryConflictError
from codevis.errors import RepositoryNotFoundError
from codevis.storage.models import RepositoryRecord
from codevis.storage.models import new_repository_id


class RepositoryStore(Protocol):
    """仓库存储接口协议（用于依赖倒置，方便替换 Postgres/Memory）。"""

    def insert(self, uri: str) -> RepositoryRecord: ...

    def find_by_id(self, repo_id: str) -> RepositoryRecord: ...

    def list_all(self) -> list[RepositoryRecord]: ...


@dataclass
class InMemoryRepositoryStore:
    """内存存储：只用于开发/测试，进程退出即丢失。"""

    records: dict[str, RepositoryRecord] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def insert(self, uri: str) -> RepositoryRecord:
        with self._lock:
            for record in self.records.values():
                if record.uri == uri:
                    raise RepositoryConflictError(existing_id=record.id)
            record = RepositoryRecord(id=new_repository_id(), uri=uri)
            self.records[record.id] = record
            return record

    def find_by_id(self, repo_id: str) -> RepositoryRecord:
        with self._lock:
            record = self.records.get(repo_id)
        if record is None:
            raise RepositoryNotFoundError(f"Repository not found: {repo_id}")
        return record

    def list_all(self) -> list[RepositoryRecord]:
        with self._lock:
            return list(self.records.values())
