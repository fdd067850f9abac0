"""
仓库相关路由（WebSocket + HTTP）。

职责：
- `/repo/add`：读取一条 `{"uri": ...}` 文本消息，跑 ingestion job，推送 Cloning / 终态
- `/repo/{repo_id}/initial/`：跑 parse job，推送受理 / 进度快照 / 结果
- `/repo/list`：列出已登记的仓库
- 非 WebSocket 的 GET 返回 400，其它方法由 FastAPI 返回 405

业务流程不写在这里（由 coordinator / parse job 负责），这里只做协议转换与连接管理。
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Callable
from http import HTTPStatus
from typing import TypeVar

import anyio
from fastapi import APIRouter
from fastapi import HTTPException
from fastapi import WebSocket
from fastapi import WebSocketDisconnect
from pydantic import ValidationError

from codevis.api.protocol import OutboundFrame
from codevis.api.protocol import failure_frame
from codevis.api.protocol import translate_job_event
from codevis.api.protocol import translate_progress_event
from codevis.api.schemas import RepositorySummary
from codevis.api.schemas import SubmitRepositoryRequest
from codevis.errors import StorageError
from codevis.infra.jobs import TerminalAware
from codevis.infra.jobs import run_in_background
from codevis.ingestion.coordinator import IngestionCoordinator
from codevis.parsing.job import ParseJob
from codevis.storage.memory import RepositoryStore

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
WEBSOCKET_EXPECTED = "Expected to established WebSocket"

EventT = TypeVar("EventT", bound=TerminalAware)


async def send_frame(websocket: WebSocket, frame: OutboundFrame) -> None:
    delivery = frame.delivery()
    if delivery != "close":
        await websocket.send_text(frame.payload())
    if delivery != "message":
        await websocket.close(code=NORMAL_CLOSURE, reason=frame.close_reason())


async def stream_job(
    websocket: WebSocket,
    repo_id: str,
    events: AsyncGenerator[EventT, None],
    translate: Callable[[EventT], OutboundFrame],
    max_buffer_size: int,
) -> None:
    """把一个后台 job 的事件流推给客户端；客户端断开时 job 随之取消。"""
    async with run_in_background(events, max_buffer_size=max_buffer_size) as receive_stream:
        try:
            async for event in receive_stream:
                frame = translate(event)
                await send_frame(websocket, frame)
                if frame.is_terminal:
                    return
            logger.error(f"job stream ended without a terminal event: id={repo_id}")
            await send_frame(websocket, failure_frame(repo_id, HTTPStatus.INTERNAL_SERVER_ERROR, "Failed"))
        except WebSocketDisconnect:
            logger.info(f"client disconnected, cancelling job: id={repo_id}")
        except (OSError, RuntimeError) as exc:
            logger.warning(f"could not send to client, cancelling job: id={repo_id}: {exc}")


def build_repository_router(
    store: RepositoryStore,
    coordinator: IngestionCoordinator,
    parse_job: ParseJob,
    event_queue_size: int,
) -> APIRouter:
    router = APIRouter()

    @router.websocket("/repo/add")
    async def add_repository(websocket: WebSocket) -> None:
        await websocket.accept()
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            logger.info("client disconnected before sending a request")
            return

        text = message.get("text")
        if text is None:
            logger.warning("got unexpected websocket message type")
            await send_frame(websocket, failure_frame("", HTTPStatus.BAD_REQUEST, "Expected TextMessage"))
            return
        try:
            request = SubmitRepositoryRequest.model_validate_json(text)
        except ValidationError as exc:
            logger.warning(f"could not decode submit request: {exc}")
            await send_frame(websocket, failure_frame("", HTTPStatus.BAD_REQUEST, "Invalid message"))
            return

        await stream_job(
            websocket,
            repo_id="",
            events=coordinator.submit(request.uri),
            translate=translate_job_event,
            max_buffer_size=event_queue_size,
        )

    @router.websocket("/repo/{repo_id}/initial/")
    async def parse_repository(websocket: WebSocket, repo_id: str) -> None:
        await websocket.accept()
        await stream_job(
            websocket,
            repo_id=repo_id,
            events=parse_job.run(repo_id),
            translate=translate_progress_event,
            max_buffer_size=event_queue_size,
        )

    @router.get("/repo/add")
    async def add_repository_without_upgrade() -> None:
        raise HTTPException(status_code=400, detail=WEBSOCKET_EXPECTED)

    @router.get("/repo/{repo_id}/initial/")
    async def parse_repository_without_upgrade(repo_id: str) -> None:
        logger.warning(f"parse requested without websocket upgrade: id={repo_id}")
        raise HTTPException(status_code=400, detail=WEBSOCKET_EXPECTED)

    @router.get("/repo/list")
    async def list_repositories() -> list[RepositorySummary]:
        try:
            records = await anyio.to_thread.run_sync(store.list_all)
        except StorageError as exc:
            logger.error(f"could not list repositories: {exc}")
            raise HTTPException(status_code=500, detail=HTTPStatus.INTERNAL_SERVER_ERROR.phrase) from exc
        return [RepositorySummary(id=r.id, uri=r.uri) for r in records]

    return router
