"""
FastAPI 服务入口。

这里做三件事：
- 加载配置（严格校验环境变量）
- 组装外部依赖（Postgres store / git cloner / analyzer）
- 装配路由（health + repository 路由）

注意：
- 业务流程不写在这里（由 `ingestion/coordinator.py` 和 `parsing/job.py` 负责）
- 建表在启动时做一次（lifespan），不在请求路径上做
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codevis.api.routes import build_repository_router
from codevis.config import AppConfig
from codevis.config import load_config_from_env
from codevis.ingestion.cloner import GitCloner
from codevis.ingestion.coordinator import IngestionCoordinator
from codevis.parsing.analyzer import LanguageAnalyzer
from codevis.parsing.dispatcher import ParseDispatcher
from codevis.parsing.job import ParseJob
from codevis.storage.memory import RepositoryStore
from codevis.storage.pg import PostgresRepositoryStore
from codevis.storage.pg import RepositoryStorageClient
from codevis.storage.pg import ensure_schema

logger = logging.getLogger(__name__)


def build_app(config: AppConfig, store: RepositoryStore | None = None) -> FastAPI:
    """创建并返回 FastAPI app（便于测试/复用；测试可注入内存 store）。"""

    storage_client: RepositoryStorageClient | None = None
    if store is None:
        storage_client = RepositoryStorageClient(dsn=config.storage.database_dsn)
        store = PostgresRepositoryStore(client=storage_client)

    repo_root = os.path.abspath(config.storage.repo_root)
    cloner = GitCloner(
        base_dir=repo_root,
        git_bin=config.git.git_bin,
        timeout_seconds=config.git.clone_timeout_seconds,
    )
    analyzer = LanguageAnalyzer(
        command=config.analyzer.command,
        line_count_command=config.analyzer.line_count_command,
        timeout_seconds=config.analyzer.timeout_seconds,
        line_count_timeout_seconds=config.analyzer.line_count_timeout_seconds,
        cwd=config.analyzer.cwd,
    )
    dispatcher = ParseDispatcher(analyzer=analyzer, repo_root=repo_root, batch_size=config.jobs.parse_batch_size)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if storage_client is not None:
            await anyio.to_thread.run_sync(ensure_schema, storage_client)
            logger.info("repository schema ready")
        yield

    app = FastAPI(title="Codebase Visualizer", version="0.1.0", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.get("/health")
    async def health() -> dict[str, str]:
        """健康检查：用于 k8s / LB 探活。"""
        return {"status": "ok"}

    app.include_router(
        build_repository_router(
            store=store,
            coordinator=IngestionCoordinator(store=store, cloner=cloner),
            parse_job=ParseJob(store=store, dispatcher=dispatcher, repo_root=repo_root),
            event_queue_size=config.jobs.event_queue_size,
        )
    )
    return app


def main() -> None:
    config = load_config_from_env(os.environ)
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(build_app(config), host=config.host, port=config.port, log_level=config.log_level)


if __name__ == "__main__":
    main()
