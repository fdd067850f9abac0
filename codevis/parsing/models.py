"""
Parse 领域模型（Pydantic）。

用途：
- 统一的递归结构：namespace / class 都可以嵌套 namespace、class、function
- 顺序即源码顺序，必须保持
- `ProgressEvent` 是 parse job 的内部事件（对外协议见 `api/schemas.py`）
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from codevis.errors import ErrorInfo


class FunctionModel(BaseModel):
    name: str
    startLine: int
    endLine: int

    @model_validator(mode="after")
    def _check_line_range(self) -> FunctionModel:
        if self.startLine > self.endLine:
            raise ValueError(f"startLine {self.startLine} > endLine {self.endLine} for {self.name}")
        return self


class ClassModel(BaseModel):
    name: str
    namespaces: list[NamespaceModel] = Field(default_factory=list)
    classes: list[ClassModel] = Field(default_factory=list)
    functions: list[FunctionModel] = Field(default_factory=list)


class NamespaceModel(BaseModel):
    name: str
    lineNr: int = 0
    namespaces: list[NamespaceModel] = Field(default_factory=list)
    classes: list[ClassModel] = Field(default_factory=list)
    functions: list[FunctionModel] = Field(default_factory=list)


ClassModel.model_rebuild()


class FileModel(BaseModel):
    """单个文件的结构摘要。`parsed=False` 时内容字段为空、行数为 0。"""

    fileName: str
    parsed: bool
    linesInFile: int = 0
    namespaces: list[NamespaceModel] = Field(default_factory=list)
    classes: list[ClassModel] = Field(default_factory=list)
    functions: list[FunctionModel] = Field(default_factory=list)

    @classmethod
    def unparsed(cls, file_name: str) -> FileModel:
        return cls(fileName=file_name, parsed=False, linesInFile=0)


class ProjectModel(BaseModel):
    files: list[FileModel] = Field(default_factory=list)


class ProgressEvent(BaseModel):
    """
    parse job 的进度事件。

    不变量：parsed_file_count + skipped_file_count <= file_count，终态事件时相等。
    - Parsing 且 current_file 为空：job 已受理（文件已枚举）
    - Parsing 且有 current_file：周期性进度快照
    - Done：携带 result
    - Failed：携带 error，没有部分结果
    """

    phase: Literal["Cloning", "Parsing", "Done", "Failed"]
    repo_id: str
    current_file: str | None = None
    parsed_file_count: int = 0
    skipped_file_count: int = 0
    file_count: int = 0
    error: ErrorInfo | None = None
    result: ProjectModel | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in ("Done", "Failed")
