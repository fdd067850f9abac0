"""
Protocol Translator：内部事件 -> 对外消息帧。

约定：
- 非终态事件 -> 普通文本消息
- 终态事件 -> 正常关闭（1000）帧，payload 为信封 JSON
- parse 的 Done 例外：先发普通消息（结果可能很大，放不进关闭帧），再以 "Done" 关闭
- 关闭帧 reason 最多 123 字节；放不下的终态信封同样改为"普通消息 + 短 reason 关闭"
- 每个 job 流只会产生一个终态帧
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Literal

from codevis.api.schemas import ParseDoneBody
from codevis.api.schemas import ParseProgressBody
from codevis.api.schemas import StatusBody
from codevis.api.schemas import WireMessage
from codevis.errors import ErrorKind
from codevis.ingestion.models import JobEvent
from codevis.parsing.models import ProgressEvent

FrameKind = Literal["message", "close", "message_then_close"]

MAX_CLOSE_REASON_BYTES = 123

_SUBMIT_FAILURE_STATUS: dict[ErrorKind, HTTPStatus] = {
    "validation": HTTPStatus.BAD_REQUEST,
    "protocol": HTTPStatus.BAD_REQUEST,
    "conflict": HTTPStatus.CONFLICT,
    "storage": HTTPStatus.CONFLICT,
    "external_tool": HTTPStatus.INTERNAL_SERVER_ERROR,
}


@dataclass(frozen=True)
class OutboundFrame:
    message: WireMessage
    kind: FrameKind

    @property
    def is_terminal(self) -> bool:
        return self.kind != "message"

    def payload(self) -> str:
        return self.message.model_dump_json()

    def delivery(self) -> FrameKind:
        if self.kind == "close" and len(self.payload().encode()) > MAX_CLOSE_REASON_BYTES:
            return "message_then_close"
        return self.kind

    def close_reason(self) -> str:
        if self.delivery() == "close":
            return self.payload()
        return self.message.body.status


def build_message(status: HTTPStatus, body: StatusBody | ParseProgressBody | ParseDoneBody) -> WireMessage:
    return WireMessage(statuscode=status.value, statustext=status.phrase, body=body)


def translate_job_event(event: JobEvent) -> OutboundFrame:
    if event.phase == "Cloning":
        return OutboundFrame(
            message=build_message(HTTPStatus.ACCEPTED, StatusBody(id=event.repo_id, status="Cloning")),
            kind="message",
        )
    if event.phase == "Done":
        return OutboundFrame(
            message=build_message(HTTPStatus.CREATED, StatusBody(id=event.repo_id, status="Done")),
            kind="close",
        )
    if event.error is None:
        reason, status = "Failed", HTTPStatus.INTERNAL_SERVER_ERROR
    else:
        reason = event.error.message
        status = _SUBMIT_FAILURE_STATUS.get(event.error.kind, HTTPStatus.INTERNAL_SERVER_ERROR)
    return OutboundFrame(message=build_message(status, StatusBody(id=event.repo_id, status=reason)), kind="close")


def translate_progress_event(event: ProgressEvent) -> OutboundFrame:
    if event.phase == "Failed":
        status = HTTPStatus.INTERNAL_SERVER_ERROR
        if event.error is not None and event.error.kind == "not_found":
            status = HTTPStatus.NOT_FOUND
        return OutboundFrame(message=build_message(status, StatusBody(id=event.repo_id, status="Failed")), kind="close")

    if event.phase == "Done":
        if event.result is None:
            raise ValueError("Done event must carry a result")
        body = ParseDoneBody(
            id=event.repo_id,
            status="Done",
            parsedFileCount=event.parsed_file_count,
            skippedFileCount=event.skipped_file_count,
            fileCount=event.file_count,
            result=event.result,
        )
        return OutboundFrame(message=build_message(HTTPStatus.OK, body), kind="message_then_close")

    if event.current_file is None:
        return OutboundFrame(
            message=build_message(HTTPStatus.ACCEPTED, StatusBody(id=event.repo_id, status="Parsing")),
            kind="message",
        )
    body = ParseProgressBody(
        id=event.repo_id,
        status="Parsing",
        currentFile=event.current_file,
        parsedFileCount=event.parsed_file_count,
        skippedFileCount=event.skipped_file_count,
        fileCount=event.file_count,
    )
    return OutboundFrame(message=build_message(HTTPStatus.OK, body), kind="message")


def failure_frame(repo_id: str, status: HTTPStatus, reason: str) -> OutboundFrame:
    """路由层自身产生的终态失败（非法消息、生产者异常结束等）。"""
    return OutboundFrame(message=build_message(status, StatusBody(id=repo_id, status=reason)), kind="close")
