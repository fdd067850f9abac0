from __future__ import annotations

"""
错误分类（taxonomy）。

约定：
- job 级错误（URI 校验 / 冲突 / 存储 / 枚举）会终止整个 job，并转换为终态失败事件
- `ExternalToolError` 在单文件分析时只影响该文件（标记为 unparsed），不会终止 job
- 客户端永远只看到稳定的 statuscode + status 文本，不会看到原始异常
"""

from typing import Literal

from pydantic import BaseModel


class InvalidURIError(ValueError):
    """提交的 URI 不是 git 仓库地址。"""

    pass


class StorageError(RuntimeError):
    """持久化层的通用错误。"""

    pass


class RepositoryConflictError(StorageError):
    """URI 已存在（唯一约束冲突），携带已存在记录的 id。"""

    def __init__(self, existing_id: str) -> None:
        super().__init__(f"Repository already exists: {existing_id}")
        self.existing_id = existing_id


class RepositoryNotFoundError(StorageError):
    """按 id 查不到仓库记录。"""

    pass


class ExternalToolError(RuntimeError):
    """外部进程（git / wc / analyzer）失败、超时或输出不合法。"""

    pass


class EnumerationError(RuntimeError):
    """无法列出仓库文件（根目录不存在或不可读）。"""

    pass


ErrorKind = Literal[
    "validation",
    "conflict",
    "storage",
    "external_tool",
    "not_found",
    "enumeration",
    "protocol",
]


class ErrorInfo(BaseModel):
    """终态失败事件携带的错误信息（kind 决定对外的 statuscode）。"""

    kind: ErrorKind
    message: str
