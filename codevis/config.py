"""
应用配置加载。

设计目标：
- **严格**：缺少必要环境变量就直接报错（避免“看起来跑了其实没配置好”）
- **类型安全**：使用 Pydantic 校验数值范围等，减少运行时踩坑
- **可测试**：核心加载函数接收 `environ` 显式输入，便于单元测试
- **无全局状态**：存储根目录 / analyzer 路径都通过配置对象注入到各组件
"""

from __future__ import annotations

import shlex
import sys
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, Field


def _default_analyzer_command() -> list[str]:
    return [sys.executable, "-m", "codevis.analyzer"]


class StorageConfig(BaseModel):
    repo_root: str
    database_dsn: str


class GitConfig(BaseModel):
    git_bin: str = "git"
    clone_timeout_seconds: float = Field(default=600.0, gt=0)


class AnalyzerConfig(BaseModel):
    """外部 analyzer 与行数统计工具的调用方式。"""

    command: list[str] = Field(default_factory=_default_analyzer_command, min_length=1)
    cwd: str | None = None
    timeout_seconds: float = Field(default=60.0, gt=0)
    line_count_command: list[str] = Field(default_factory=lambda: ["wc", "-l"], min_length=1)
    line_count_timeout_seconds: float = Field(default=10.0, gt=0)


class JobConfig(BaseModel):
    parse_batch_size: int = Field(default=10, gt=0)
    event_queue_size: int = Field(default=64, gt=0)


class AppConfig(BaseModel):
    """应用运行所需的配置集合。"""

    storage: StorageConfig
    git: GitConfig = Field(default_factory=GitConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    jobs: JobConfig = Field(default_factory=JobConfig)
    host: str = "127.0.0.1"
    port: int = Field(default=8080, gt=0, lt=65536)
    # 同时传给 logging.basicConfig 与 uvicorn，只接受两边都认识的级别
    log_level: Literal["critical", "error", "warning", "info", "debug"] = "info"


def load_config_from_env(environ: Mapping[str, str]) -> AppConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`AppConfig`
    - **失败**：必填项缺失/为空、或数值不合法时抛 `ValueError`
    """

    required_keys: tuple[str, ...] = ("REPO_STORAGE_ROOT", "DATABASE_DSN")
    missing: list[str] = [key for key in required_keys if key not in environ or not environ[key]]
    if missing:
        raise ValueError(f"Missing required env vars: {', '.join(missing)}")

    git: dict[str, object] = {}
    if environ.get("GIT_BIN"):
        git["git_bin"] = environ["GIT_BIN"]
    if environ.get("CLONE_TIMEOUT_SECONDS"):
        git["clone_timeout_seconds"] = environ["CLONE_TIMEOUT_SECONDS"]

    analyzer: dict[str, object] = {}
    if environ.get("ANALYZER_COMMAND"):
        analyzer["command"] = shlex.split(environ["ANALYZER_COMMAND"])
    if environ.get("ANALYZER_CWD"):
        analyzer["cwd"] = environ["ANALYZER_CWD"]
    if environ.get("ANALYZER_TIMEOUT_SECONDS"):
        analyzer["timeout_seconds"] = environ["ANALYZER_TIMEOUT_SECONDS"]
    if environ.get("LINE_COUNT_COMMAND"):
        analyzer["line_count_command"] = shlex.split(environ["LINE_COUNT_COMMAND"])
    if environ.get("LINE_COUNT_TIMEOUT_SECONDS"):
        analyzer["line_count_timeout_seconds"] = environ["LINE_COUNT_TIMEOUT_SECONDS"]

    jobs: dict[str, object] = {}
    if environ.get("PARSE_BATCH_SIZE"):
        jobs["parse_batch_size"] = environ["PARSE_BATCH_SIZE"]
    if environ.get("EVENT_QUEUE_SIZE"):
        jobs["event_queue_size"] = environ["EVENT_QUEUE_SIZE"]

    server: dict[str, object] = {}
    if environ.get("HOST"):
        server["host"] = environ["HOST"]
    if environ.get("PORT"):
        server["port"] = environ["PORT"]
    if environ.get("LOG_LEVEL"):
        server["log_level"] = environ["LOG_LEVEL"].lower()

    # 交给 Pydantic 做类型校验（ValidationError 本身就是 ValueError 子类）
    return AppConfig(
        storage=StorageConfig(repo_root=environ["REPO_STORAGE_ROOT"], database_dsn=environ["DATABASE_DSN"]),
        git=GitConfig.model_validate(git),
        analyzer=AnalyzerConfig.model_validate(analyzer),
        jobs=JobConfig.model_validate(jobs),
        **server,
    )
