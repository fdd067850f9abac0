"""
外部 analyzer 的 stdout schema（Pydantic）。

说明：
- analyzer 输出的是“包一层 key”的 JSON（`{"function": {...}}`、`{"namespace": {...}, "line_nr": 0}`）
- 列表字段可能是 null（没有对应元素时 analyzer 直接输出 null）
- 这里只负责校验；转换为领域模型在 `to_file_model`
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from codevis.parsing.models import ClassModel
from codevis.parsing.models import FileModel
from codevis.parsing.models import FunctionModel
from codevis.parsing.models import NamespaceModel


class AnalyzerFunction(BaseModel):
    name: str
    start_line: int
    end_line: int


class AnalyzerFunctionEntry(BaseModel):
    function: AnalyzerFunction


class AnalyzerScope(BaseModel):
    name: str
    functions: list[AnalyzerFunctionEntry] | None = None
    namespaces: list[AnalyzerNamespaceEntry] | None = None
    classes: list[AnalyzerClassEntry] | None = None


class AnalyzerNamespaceEntry(BaseModel):
    namespace: AnalyzerScope
    line_nr: int = 0


class AnalyzerClassEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_: AnalyzerScope = Field(alias="class")


class AnalyzerFile(BaseModel):
    file_name: str | None = None
    functions: list[AnalyzerFunctionEntry] | None = None
    namespaces: list[AnalyzerNamespaceEntry] | None = None
    classes: list[AnalyzerClassEntry] | None = None


class AnalyzerOutput(BaseModel):
    file: AnalyzerFile


AnalyzerScope.model_rebuild()


def _functions(entries: list[AnalyzerFunctionEntry] | None) -> list[FunctionModel]:
    return [
        FunctionModel(name=e.function.name, startLine=e.function.start_line, endLine=e.function.end_line)
        for e in entries or []
    ]


def _namespaces(entries: list[AnalyzerNamespaceEntry] | None) -> list[NamespaceModel]:
    return [
        NamespaceModel(
            name=e.namespace.name,
            lineNr=e.line_nr,
            namespaces=_namespaces(e.namespace.namespaces),
            classes=_classes(e.namespace.classes),
            functions=_functions(e.namespace.functions),
        )
        for e in entries or []
    ]


def _classes(entries: list[AnalyzerClassEntry] | None) -> list[ClassModel]:
    return [
        ClassModel(
            name=e.class_.name,
            namespaces=_namespaces(e.class_.namespaces),
            classes=_classes(e.class_.classes),
            functions=_functions(e.class_.functions),
        )
        for e in entries or []
    ]


def to_file_model(output: AnalyzerOutput, file_name: str, lines_in_file: int) -> FileModel:
    """analyzer 输出 -> `FileModel`。fileName 以调用方传入的路径为准。"""
    return FileModel(
        fileName=file_name,
        parsed=True,
        linesInFile=lines_in_file,
        namespaces=_namespaces(output.file.namespaces),
        classes=_classes(output.file.classes),
        functions=_functions(output.file.functions),
    )
