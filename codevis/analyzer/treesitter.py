from __future__ import annotations

from dataclasses import dataclass, field

from tree_sitter import Node
from tree_sitter_language_pack import get_parser

SUPPORTED_LANGUAGES = ("java", "cpp")

JAVA_TYPE_NODES = {
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
    "annotation_type_declaration",
}
JAVA_FUNCTION_NODES = {"method_declaration", "constructor_declaration"}
JAVA_CONTAINER_NODES = {"enum_body_declarations"}

CPP_CLASS_NODES = {"class_specifier", "struct_specifier", "union_specifier"}
CPP_CONTAINER_NODES = {
    "template_declaration",
    "declaration",
    "field_declaration",
    "linkage_specification",
    "declaration_list",
    "preproc_if",
    "preproc_ifdef",
    "preproc_else",
    "preproc_elif",
}


@dataclass
class _Scope:
    name: str
    line_nr: int = 0
    functions: list[dict[str, object]] = field(default_factory=list)
    namespaces: list[_Scope] = field(default_factory=list)
    classes: list[_Scope] = field(default_factory=list)

    def to_json(self) -> dict[str, object]:
        return {
            "name": self.name,
            "functions": [{"function": f} for f in self.functions] or None,
            "namespaces": [{"namespace": ns.to_json(), "line_nr": ns.line_nr} for ns in self.namespaces] or None,
            "classes": [{"class": c.to_json()} for c in self.classes] or None,
        }


def analyze_source(source: bytes, language: str, file_name: str) -> dict[str, object]:
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")
    tree = get_parser(language).parse(source)
    root = _Scope(name=file_name)
    if language == "java":
        _walk_java(tree.root_node, root)
    else:
        _walk_cpp(tree.root_node, root)
    parsed = root.to_json()
    parsed.pop("name")
    return {"file": {"file_name": file_name, **parsed}}


def _walk_java(node: Node, scope: _Scope) -> None:
    for child in node.children:
        if child.type == "package_declaration":
            # package 作用于整个文件：之后的顶层声明都挂在这个 namespace 下
            package = _Scope(name=_java_package_name(child), line_nr=_line(child))
            scope.namespaces.append(package)
            scope = package
        elif child.type in JAVA_TYPE_NODES:
            cls = _Scope(name=_symbol_name(child))
            scope.classes.append(cls)
            body = child.child_by_field_name("body")
            if body is not None:
                _walk_java(body, cls)
        elif child.type in JAVA_FUNCTION_NODES:
            scope.functions.append(_function(child, name=_symbol_name(child)))
        elif child.type in JAVA_CONTAINER_NODES:
            _walk_java(child, scope)


def _walk_cpp(node: Node, scope: _Scope) -> None:
    for child in node.children:
        if child.type == "namespace_definition":
            namespace = _Scope(name=_symbol_name(child), line_nr=_line(child))
            scope.namespaces.append(namespace)
            body = child.child_by_field_name("body")
            if body is not None:
                _walk_cpp(body, namespace)
        elif child.type in CPP_CLASS_NODES:
            body = child.child_by_field_name("body")
            if body is None:
                continue
            cls = _Scope(name=_symbol_name(child))
            scope.classes.append(cls)
            _walk_cpp(body, cls)
        elif child.type == "function_definition":
            scope.functions.append(_function(child, name=_cpp_function_name(child)))
        elif child.type in CPP_CONTAINER_NODES:
            _walk_cpp(child, scope)


def _java_package_name(node: Node) -> str:
    for child in node.named_children:
        if child.type in ("identifier", "scoped_identifier"):
            return _text(child)
    return "anonymous"


def _cpp_function_name(node: Node) -> str:
    declarator = node.child_by_field_name("declarator")
    while declarator is not None and declarator.type != "function_declarator":
        declarator = _inner_declarator(declarator)
    if declarator is None:
        return "anonymous"
    inner = declarator.child_by_field_name("declarator")
    if inner is None:
        return "anonymous"
    return _text(inner)


def _inner_declarator(node: Node) -> Node | None:
    inner = node.child_by_field_name("declarator")
    if inner is not None:
        return inner
    for child in node.named_children:
        if child.type.endswith("declarator"):
            return child
    return None


def _function(node: Node, name: str) -> dict[str, object]:
    return {"name": name, "start_line": _line(node), "end_line": node.end_point[0] + 1}


def _symbol_name(node: Node) -> str:
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return "anonymous"
    return _text(name_node)


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _text(node: Node) -> str:
    return node.text.decode("utf-8", errors="replace")
