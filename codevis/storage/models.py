from __future__ import annotations

import secrets

from pydantic import BaseModel

# 12 字节 -> 24 位十六进制，保证终态信封能放进关闭帧
REPOSITORY_ID_BYTES = 12


def new_repository_id() -> str:
    return secrets.token_hex(REPOSITORY_ID_BYTES)


class RepositoryRecord(BaseModel):
    id: str
    uri: str
