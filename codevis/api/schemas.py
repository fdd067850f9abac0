"""
WebSocket / HTTP 对外 schema（Pydantic）。

说明：
- 每条消息（普通消息和关闭帧 payload）都是同一个信封：statuscode / statustext / body
- body 按场景区分三种结构，和内部事件类型解耦
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel

from codevis.parsing.models import ProjectModel


class SubmitRepositoryRequest(BaseModel):
    """`/repo/add` 上客户端发送的唯一一条文本消息。"""

    uri: str


class StatusBody(BaseModel):
    id: str
    status: str


class ParseProgressBody(BaseModel):
    id: str
    status: str
    currentFile: str
    parsedFileCount: int
    skippedFileCount: int
    fileCount: int


class ParseDoneBody(BaseModel):
    id: str
    status: str
    parsedFileCount: int
    skippedFileCount: int
    fileCount: int
    result: ProjectModel


class WireMessage(BaseModel):
    statuscode: int
    statustext: str
    body: Union[ParseDoneBody, ParseProgressBody, StatusBody]


class RepositorySummary(BaseModel):
    id: str
    uri: str
