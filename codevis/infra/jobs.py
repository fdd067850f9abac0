from __future__ import annotations

"""
后台 job 运行器（有界队列 + 取消）。

为什么需要这个模块：
- 生产者（clone / parse）和消费者（WebSocket 推送）必须解耦：
  慢的客户端不能拖慢文件处理，断开的客户端不能让生产者永远阻塞
- 非终态事件（进度快照）用 `send_nowait`，队列满时直接丢弃（快照是累计值，丢一条无损）
- 终态事件用可取消的 `send`，保证一定送达或随 job 一起被取消
- 离开 context（正常结束 / 客户端断开 / 异常）时取消生产者 task
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing, asynccontextmanager
from typing import Protocol, TypeVar

import anyio
from anyio.abc import ObjectReceiveStream, ObjectSendStream

logger = logging.getLogger(__name__)


class TerminalAware(Protocol):
    @property
    def is_terminal(self) -> bool: ...


EventT = TypeVar("EventT", bound=TerminalAware)


@asynccontextmanager
async def run_in_background(
    events: AsyncGenerator[EventT, None],
    max_buffer_size: int,
) -> AsyncIterator[ObjectReceiveStream[EventT]]:
    """在独立 task 中驱动 `events`，并把事件流交给调用方消费。"""
    if max_buffer_size <= 0:
        raise ValueError("max_buffer_size must be > 0")
    send_stream, receive_stream = anyio.create_memory_object_stream(max_buffer_size)
    async with anyio.create_task_group() as tg:
        tg.start_soon(_pump, events, send_stream)
        try:
            async with receive_stream:
                yield receive_stream
        finally:
            tg.cancel_scope.cancel()


async def _pump(events: AsyncGenerator[EventT, None], send_stream: ObjectSendStream[EventT]) -> None:
    async with send_stream, aclosing(events):
        async for event in events:
            try:
                if event.is_terminal:
                    await send_stream.send(event)
                    return
                send_stream.send_nowait(event)
            except anyio.WouldBlock:
                logger.debug("event queue full, dropping progress event")
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                logger.info("event consumer went away, stopping job")
                return
