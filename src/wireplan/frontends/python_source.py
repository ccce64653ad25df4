from __future__ import annotations

import ast
import fnmatch
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from wireplan.annotations import parse_tag_lines
from wireplan.declarations import (
    AnnotationTag,
    CallSignature,
    Declaration,
    Parameter,
    TypeRef,
)
from wireplan.exceptions import WirePlanSourceError
from wireplan.types import DeclarationKind

logger = logging.getLogger(__name__)

_INTERFACE_BASES = frozenset({"Protocol", "ABC"})
_IGNORED_BASES = frozenset({"object", "Protocol", "ABC", "Generic"})
_TYPE_PARAMETER_FACTORIES = frozenset({"TypeVar", "ParamSpec", "TypeVarTuple"})
_TRANSPARENT_WRAPPERS = frozenset({"ClassVar", "Final", "Required", "NotRequired", "ReadOnly"})
_DATACLASS_DECORATORS = frozenset({"dataclass", "define", "frozen"})


def discover_sources(root: Path, *, exclude: Sequence[str] = ()) -> list[Path]:
    """Return every ``.py`` file below ``root`` in a stable order.

    Args:
        root: Directory to scan.
        exclude: Glob patterns matched against root-relative POSIX paths.

    """
    found: list[Path] = []
    for path in sorted(root.rglob("*.py")):
        relative = path.relative_to(root).as_posix()
        if any(fnmatch.fnmatch(relative, pattern) for pattern in exclude):
            logger.debug("Skipping excluded source %s", relative)
            continue
        found.append(path)
    return found


def load_declarations(paths: Iterable[Path], *, root: Path) -> tuple[Declaration, ...]:
    """Parse source files into the declarations of a semantic snapshot.

    Raises:
        WirePlanSourceError: A file cannot be read or parsed.

    """
    declarations: list[Declaration] = []
    for path in paths:
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as error:
            msg = f"Cannot read source file {path}: {error}"
            raise WirePlanSourceError(msg) from error
        try:
            file_path = path.relative_to(root).as_posix()
        except ValueError:
            file_path = path.as_posix()
        declarations.extend(parse_module(source, file_path=file_path))
    return tuple(declarations)


def parse_module(source: str, *, file_path: str) -> tuple[Declaration, ...]:
    """Parse one module's source text into declarations.

    Raises:
        WirePlanSourceError: The source is not valid Python.

    """
    try:
        tree = ast.parse(source, filename=file_path)
    except SyntaxError as error:
        msg = f"Cannot parse {file_path}: {error.msg} (line {error.lineno})"
        raise WirePlanSourceError(msg) from error
    return _ModuleScanner(file_path=file_path, tree=tree).scan()


class _ModuleScanner:
    def __init__(self, *, file_path: str, tree: ast.Module) -> None:
        self._file_path = file_path
        self._tree = tree
        self._exports = _module_exports(tree)
        self._module_type_parameters = _module_type_parameters(tree)
        self._declarations: list[Declaration] = []

    def scan(self) -> tuple[Declaration, ...]:
        self._scan_body(self._tree.body, namespace=None)
        return tuple(self._declarations)

    def _scan_body(self, body: list[ast.stmt], *, namespace: str | None) -> None:
        for index, statement in enumerate(body):
            following = body[index + 1] if index + 1 < len(body) else None
            if isinstance(statement, ast.ClassDef):
                self._scan_class(statement, namespace=namespace)
            elif isinstance(statement, ast.FunctionDef | ast.AsyncFunctionDef):
                self._scan_function(statement, namespace=namespace)
            elif isinstance(statement, ast.AnnAssign):
                self._scan_annotated_assignment(statement, following, namespace=namespace)
            elif isinstance(statement, ast.Assign):
                self._scan_assignment(statement, following, namespace=namespace)
            elif _is_type_alias_statement(statement):
                self._scan_type_alias_statement(statement, following, namespace=namespace)

    def _is_exported(self, name: str, namespace: str | None) -> bool:
        if name.startswith("_"):
            return False
        if namespace is not None:
            return self._is_exported(namespace, None)
        if self._exports is None:
            return True
        return name in self._exports

    def _add(self, name: str, kind: DeclarationKind, *, namespace: str | None, **fields: Any) -> None:
        self._declarations.append(
            Declaration(
                name=name,
                kind=kind,
                file_path=self._file_path,
                exported=self._is_exported(name, namespace),
                namespace=namespace,
                **fields,
            ),
        )

    def _scan_class(self, node: ast.ClassDef, *, namespace: str | None) -> None:
        tags = parse_tag_lines(ast.get_docstring(node))
        if namespace is None and _is_namespace(node, tags):
            self._scan_body(node.body, namespace=node.name)
            return

        type_parameters = self._class_type_parameters(node)
        converter = _TypeConverter({*self._module_type_parameters, *type_parameters})
        base_names = [_name_of(base) for base in node.bases]
        is_interface = any(name in _INTERFACE_BASES for name in base_names) or any(
            keyword.arg == "metaclass" and _name_of(keyword.value) == "ABCMeta"
            for keyword in node.keywords
        )
        extends = tuple(
            converter.convert(base)
            for base, name in zip(node.bases, base_names, strict=True)
            if name not in _IGNORED_BASES
        )

        self._add(
            name=node.name,
            kind=DeclarationKind.INTERFACE if is_interface else DeclarationKind.CLASS,
            namespace=namespace,
            tags=tags,
            type_parameters=tuple(type_parameters),
            extends=extends,
            parameters=_constructor_parameters(node, converter),
        )

    def _scan_function(
        self,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        *,
        namespace: str | None,
    ) -> None:
        type_parameters = self._function_type_parameters(node)
        converter = _TypeConverter({*self._module_type_parameters, *type_parameters})
        signatures: tuple[CallSignature, ...] = ()
        if node.returns is not None:
            signatures = (
                CallSignature(
                    parameters=_function_parameters(node.args, converter),
                    returns=converter.convert(node.returns),
                ),
            )
        self._add(
            name=node.name,
            kind=DeclarationKind.FUNCTION,
            namespace=namespace,
            tags=parse_tag_lines(ast.get_docstring(node)),
            type_parameters=tuple(type_parameters),
            signatures=signatures,
        )

    def _scan_annotated_assignment(
        self,
        node: ast.AnnAssign,
        following: ast.stmt | None,
        *,
        namespace: str | None,
    ) -> None:
        if not isinstance(node.target, ast.Name) or node.value is None:
            return
        tags = _attribute_docstring_tags(following)
        converter = _TypeConverter(self._module_type_parameters)
        if _name_of(node.annotation) == "TypeAlias":
            self._add(
                name=node.target.id,
                kind=DeclarationKind.TYPE_ALIAS,
                namespace=namespace,
                tags=tags,
                aliased=converter.convert(node.value),
            )
            return
        if not isinstance(node.value, ast.Lambda):
            return
        self._add(
            name=node.target.id,
            kind=DeclarationKind.VARIABLE,
            namespace=namespace,
            tags=tags,
            signatures=_callable_annotation_signatures(node.annotation, converter),
        )

    def _scan_assignment(
        self,
        node: ast.Assign,
        following: ast.stmt | None,
        *,
        namespace: str | None,
    ) -> None:
        if len(node.targets) != 1 or not isinstance(node.targets[0], ast.Name):
            return
        name = node.targets[0].id
        if name == "__all__" or name in self._module_type_parameters:
            return
        tags = _attribute_docstring_tags(following)
        if isinstance(node.value, ast.Subscript):
            self._add(
                name=name,
                kind=DeclarationKind.TYPE_ALIAS,
                namespace=namespace,
                tags=tags,
                aliased=_TypeConverter(self._module_type_parameters).convert(node.value),
            )
        elif isinstance(node.value, ast.Lambda):
            self._add(
                name=name,
                kind=DeclarationKind.VARIABLE,
                namespace=namespace,
                tags=tags,
            )

    def _scan_type_alias_statement(
        self,
        node: ast.stmt,
        following: ast.stmt | None,
        *,
        namespace: str | None,
    ) -> None:
        type_parameters = {*self._module_type_parameters, *_pep695_parameters(node)}
        self._add(
            name=node.name.id,  # type: ignore[attr-defined]
            kind=DeclarationKind.TYPE_ALIAS,
            namespace=namespace,
            tags=_attribute_docstring_tags(following),
            type_parameters=tuple(_pep695_parameters(node)),
            aliased=_TypeConverter(type_parameters).convert(node.value),  # type: ignore[attr-defined]
        )

    def _class_type_parameters(self, node: ast.ClassDef) -> list[str]:
        parameters = list(_pep695_parameters(node))
        for base in node.bases:
            for name in _referenced_names(base):
                if name in self._module_type_parameters and name not in parameters:
                    parameters.append(name)
        return parameters

    def _function_type_parameters(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> list[str]:
        parameters = list(_pep695_parameters(node))
        arguments = [*node.args.posonlyargs, *node.args.args, *node.args.kwonlyargs]
        annotations = [argument.annotation for argument in arguments if argument.annotation]
        if node.returns is not None:
            annotations.append(node.returns)
        for annotation in annotations:
            for name in _referenced_names(annotation):
                if name in self._module_type_parameters and name not in parameters:
                    parameters.append(name)
        return parameters


class _TypeConverter:
    """Convert annotation expressions into ``TypeRef`` values."""

    def __init__(self, type_parameters: Iterable[str]) -> None:
        self._type_parameters = frozenset(type_parameters)

    def convert(self, node: ast.expr) -> TypeRef:
        if isinstance(node, ast.Constant):
            return self._convert_constant(node)
        if isinstance(node, ast.Name):
            if node.id in self._type_parameters:
                return TypeRef.type_parameter(node.id)
            return TypeRef.named(node.id)
        if isinstance(node, ast.Attribute):
            return TypeRef.named(node.attr)
        if isinstance(node, ast.Subscript):
            return self._convert_subscript(node)
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._convert_union(_union_members(node), node)
        return TypeRef.structural(ast.unparse(node))

    def _convert_constant(self, node: ast.Constant) -> TypeRef:
        if node.value is None:
            return TypeRef.named("None")
        if not isinstance(node.value, str):
            return TypeRef.structural(ast.unparse(node))
        try:
            expression = ast.parse(node.value, mode="eval").body
        except SyntaxError:
            return TypeRef.structural(node.value)
        return self.convert(expression)

    def _convert_subscript(self, node: ast.Subscript) -> TypeRef:
        name = _name_of(node.value)
        arguments = _subscript_arguments(node)
        if name is None or name == "Callable":
            return TypeRef.structural(ast.unparse(node))
        if name == "Optional":
            return self._convert_union([*arguments, ast.Constant(value=None)], node)
        if name == "Union":
            return self._convert_union(arguments, node)
        if name == "Annotated" or name in _TRANSPARENT_WRAPPERS:
            return self.convert(arguments[0])
        return TypeRef.named(name, *(self.convert(argument) for argument in arguments))

    def _convert_union(self, members: list[ast.expr], node: ast.expr) -> TypeRef:
        remaining = [member for member in members if not _is_none(member)]
        if len(remaining) == 1:
            return self.convert(remaining[0])
        return TypeRef.structural(ast.unparse(node))


def _module_exports(tree: ast.Module) -> frozenset[str] | None:
    for statement in tree.body:
        if not isinstance(statement, ast.Assign | ast.AnnAssign):
            continue
        targets = statement.targets if isinstance(statement, ast.Assign) else [statement.target]
        if not any(isinstance(target, ast.Name) and target.id == "__all__" for target in targets):
            continue
        if isinstance(statement.value, ast.List | ast.Tuple):
            return frozenset(
                element.value
                for element in statement.value.elts
                if isinstance(element, ast.Constant) and isinstance(element.value, str)
            )
    return None


def _module_type_parameters(tree: ast.Module) -> frozenset[str]:
    names: set[str] = set()
    for statement in tree.body:
        if not isinstance(statement, ast.Assign) or not isinstance(statement.value, ast.Call):
            continue
        if _name_of(statement.value.func) not in _TYPE_PARAMETER_FACTORIES:
            continue
        names.update(target.id for target in statement.targets if isinstance(target, ast.Name))
    return frozenset(names)


def _is_namespace(node: ast.ClassDef, tags: tuple[AnnotationTag, ...]) -> bool:
    if tags or any(_name_of(base) != "object" for base in node.bases):
        return False
    return any(
        isinstance(member, ast.ClassDef | ast.FunctionDef | ast.AsyncFunctionDef)
        and parse_tag_lines(ast.get_docstring(member))
        for member in node.body
    )


def _is_type_alias_statement(statement: ast.stmt) -> bool:
    type_alias = getattr(ast, "TypeAlias", None)
    return type_alias is not None and isinstance(statement, type_alias)


def _pep695_parameters(node: ast.AST) -> list[str]:
    return [
        parameter.name
        for parameter in getattr(node, "type_params", ())
        if isinstance(getattr(parameter, "name", None), str)
    ]


def _attribute_docstring_tags(following: ast.stmt | None) -> tuple[AnnotationTag, ...]:
    if (
        isinstance(following, ast.Expr)
        and isinstance(following.value, ast.Constant)
        and isinstance(following.value.value, str)
    ):
        return parse_tag_lines(following.value.value)
    return ()


def _constructor_parameters(node: ast.ClassDef, converter: _TypeConverter) -> tuple[Parameter, ...]:
    for member in node.body:
        if isinstance(member, ast.FunctionDef) and member.name == "__init__":
            return _function_parameters(member.args, converter, skip_first=True)
    if not any(_name_of(_decorator_target(item)) in _DATACLASS_DECORATORS for item in node.decorator_list):
        return ()
    return tuple(
        Parameter(name=member.target.id, annotation=converter.convert(member.annotation))
        for member in node.body
        if isinstance(member, ast.AnnAssign)
        and isinstance(member.target, ast.Name)
        and _name_of(member.annotation) not in {"ClassVar", "InitVar"}
    )


def _function_parameters(
    arguments: ast.arguments,
    converter: _TypeConverter,
    *,
    skip_first: bool = False,
) -> tuple[Parameter, ...]:
    positional = [*arguments.posonlyargs, *arguments.args]
    if skip_first:
        positional = positional[1:]
    return tuple(
        Parameter(
            name=argument.arg,
            annotation=None if argument.annotation is None else converter.convert(argument.annotation),
        )
        for argument in [*positional, *arguments.kwonlyargs]
    )


def _callable_annotation_signatures(
    annotation: ast.expr,
    converter: _TypeConverter,
) -> tuple[CallSignature, ...]:
    if not isinstance(annotation, ast.Subscript) or _name_of(annotation.value) != "Callable":
        return ()
    arguments = _subscript_arguments(annotation)
    if len(arguments) != 2:  # noqa: PLR2004
        return ()
    parameter_list, returns = arguments
    parameters: tuple[Parameter, ...] = ()
    if isinstance(parameter_list, ast.List):
        parameters = tuple(
            Parameter(name=f"arg{index}", annotation=converter.convert(element))
            for index, element in enumerate(parameter_list.elts)
        )
    return (CallSignature(parameters=parameters, returns=converter.convert(returns)),)


def _subscript_arguments(node: ast.Subscript) -> list[ast.expr]:
    if isinstance(node.slice, ast.Tuple):
        return list(node.slice.elts)
    return [node.slice]


def _union_members(node: ast.expr) -> list[ast.expr]:
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return [*_union_members(node.left), *_union_members(node.right)]
    return [node]


def _is_none(node: ast.expr) -> bool:
    return (isinstance(node, ast.Constant) and node.value is None) or (
        isinstance(node, ast.Name) and node.id == "None"
    )


def _decorator_target(node: ast.expr) -> ast.expr:
    return node.func if isinstance(node, ast.Call) else node


def _name_of(node: ast.expr) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Subscript):
        return _name_of(node.value)
    return None


def _referenced_names(node: ast.expr) -> list[str]:
    return [child.id for child in ast.walk(node) if isinstance(child, ast.Name)]
