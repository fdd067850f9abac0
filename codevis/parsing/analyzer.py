from __future__ import annotations

import logging
import os
from collections.abc import Sequence

from pydantic import ValidationError

from codevis.errors import ExternalToolError
from codevis.infra.process import run_tool
from codevis.parsing.models import FileModel
from codevis.parsing.schemas import AnalyzerOutput
from codevis.parsing.schemas import to_file_model

logger = logging.getLogger(__name__)

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".java": "java",
}


def route_language(path: str) -> str | None:
    """按扩展名决定 analyzer 的语言标签；不在表里的文件不分析（计为 skipped）。"""
    return LANGUAGE_BY_EXTENSION.get(os.path.splitext(path)[1])


class LanguageAnalyzer:
    """外部 analyzer 适配器：先 `wc -l` 计行数，再调用 analyzer 解析结构。"""

    def __init__(
        self,
        command: Sequence[str],
        line_count_command: Sequence[str],
        timeout_seconds: float,
        line_count_timeout_seconds: float,
        cwd: str | None = None,
    ) -> None:
        if not command:
            raise ValueError("analyzer command must not be empty")
        if not line_count_command:
            raise ValueError("line count command must not be empty")
        self._command = list(command)
        self._line_count_command = list(line_count_command)
        self._timeout_seconds = timeout_seconds
        self._line_count_timeout_seconds = line_count_timeout_seconds
        self._cwd = cwd

    async def count_lines(self, path: str) -> int:
        result = await run_tool(self._line_count_command + [path], timeout=self._line_count_timeout_seconds)
        output = result.stdout.decode("utf-8", errors="replace").split()
        if not output:
            raise ExternalToolError(f"line count produced no output for {path}")
        try:
            return int(output[0])
        except ValueError as exc:
            raise ExternalToolError(f"line count output is not a number for {path}: {output[0]!r}") from exc

    async def analyze(self, path: str, language: str) -> FileModel:
        """
        分析单个文件。任何失败（进程失败/超时/输出不合法）都抛 `ExternalToolError`，
        由 dispatcher 降级为 unparsed，不影响其它文件。
        """
        lines_in_file = await self.count_lines(path)
        result = await run_tool(
            self._command + ["-f", path, "-t", language, "-c", "Initial"],
            timeout=self._timeout_seconds,
            cwd=self._cwd,
        )
        try:
            output = AnalyzerOutput.model_validate_json(result.stdout)
            return to_file_model(output, file_name=path, lines_in_file=lines_in_file)
        except ValidationError as exc:
            logger.error(f"malformed analyzer output for {path}: {exc}")
            raise ExternalToolError(f"malformed analyzer output for {path}") from exc
