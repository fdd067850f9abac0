"""
Parse Dispatcher + Progress Batcher。

- 严格顺序：按枚举顺序逐个文件处理，不做文件级并发
- 每处理完下标 n 的文件，若 `n % batch_size == 0` 就产出一次进度快照（固定节奏，与 parsed/skipped 数量无关）
- 单文件失败只影响该文件：记为 unparsed + skipped，job 继续
- 全部处理完后做一次路径 sanitize，再产出唯一的 Done 事件
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncGenerator, Sequence
from typing import Protocol

from codevis.errors import ExternalToolError
from codevis.parsing.analyzer import route_language
from codevis.parsing.models import FileModel
from codevis.parsing.models import ProgressEvent
from codevis.parsing.models import ProjectModel
from codevis.parsing.sanitizer import sanitize_project_model

logger = logging.getLogger(__name__)


class FileAnalyzer(Protocol):
    async def analyze(self, path: str, language: str) -> FileModel: ...


class ParseDispatcher:
    def __init__(self, analyzer: FileAnalyzer, repo_root: str, batch_size: int) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self._analyzer = analyzer
        self._repo_root = repo_root
        self._batch_size = batch_size

    async def parse(self, repo_id: str, files: Sequence[str]) -> AsyncGenerator[ProgressEvent, None]:
        project = ProjectModel()
        parsed = 0
        skipped = 0
        file_count = len(files)

        for n, path in enumerate(files):
            data = await self._analyze_one(repo_id=repo_id, path=path)
            if data.parsed:
                parsed += 1
            else:
                skipped += 1
            project.files.append(data)

            if n % self._batch_size == 0:
                yield ProgressEvent(
                    phase="Parsing",
                    repo_id=repo_id,
                    current_file=os.path.basename(path),
                    parsed_file_count=parsed,
                    skipped_file_count=skipped,
                    file_count=file_count,
                )

        logger.info(f"parse finished: id={repo_id} parsed={parsed} skipped={skipped} total={file_count}")
        yield ProgressEvent(
            phase="Done",
            repo_id=repo_id,
            parsed_file_count=parsed,
            skipped_file_count=skipped,
            file_count=file_count,
            result=sanitize_project_model(project, repo_root=self._repo_root),
        )

    async def _analyze_one(self, repo_id: str, path: str) -> FileModel:
        language = route_language(path)
        if language is None:
            return FileModel.unparsed(path)
        try:
            return await self._analyzer.analyze(path, language)
        except ExternalToolError as exc:
            logger.warning(f"could not analyze file, marking unparsed: id={repo_id} file={path}: {exc}")
            return FileModel.unparsed(path)
