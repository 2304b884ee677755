# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import ast
import inspect
import logging
from dataclasses import dataclass, field

from optscatter.detect import VARIADIC_KINDS, is_tensoroptions_annotation_str

logger = logging.getLogger(__name__)


@dataclass
class ParamDecl:
    """A parameter of a function declared in Python source."""

    name: str
    kind: inspect._ParameterKind
    annotation: str | None = None
    has_default: bool = False

    def __str__(self):
        prefix = {
            inspect.Parameter.VAR_POSITIONAL: "*",
            inspect.Parameter.VAR_KEYWORD: "**",
        }.get(self.kind, "")
        s = prefix + self.name
        if self.annotation:
            s += f": {self.annotation}"
        if self.has_default:
            s += " = ..."
        return s

    @property
    def is_tensoroptions(self) -> bool:
        return is_tensoroptions_annotation_str(self.annotation)

    @property
    def is_variadic(self) -> bool:
        return self.kind in VARIADIC_KINDS


class FunctionDecl:
    """Represents a top-level Python function found in a source file."""

    def __init__(
        self,
        name: str,
        params: list[ParamDecl],
        return_annotation: str | None,
        lineno: int,
        is_async: bool,
        parse_entry_point: str,
    ):
        self.name = name
        self.params = params
        self.return_annotation = return_annotation
        self.lineno = lineno
        self.is_async = is_async
        self.parse_entry_point = parse_entry_point

    def __str__(self):
        ret = self.return_annotation or "?"
        return f"{self.name}({', '.join(str(p) for p in self.params)}) -> {ret}"

    def __repr__(self):
        old = super().__repr__()
        return f"{old[:-1]} {self.__str__()}>"

    def tensoroptions_param_indices(self) -> list[int]:
        return [i for i, p in enumerate(self.params) if p.is_tensoroptions]

    def has_tensoroptions(self) -> bool:
        return bool(self.tensoroptions_param_indices())


@dataclass
class Declarations:
    functions: list[FunctionDecl] = field(default_factory=list)


def _unparse(node) -> str | None:
    if node is None:
        return None
    return ast.unparse(node)


def _params_from_arguments(args: ast.arguments) -> list[ParamDecl]:
    """Flatten ``ast.arguments`` into declaration order.

    Positional defaults align with the tail of ``posonlyargs + args``;
    ``kw_defaults`` holds None for keyword-only parameters without one.
    """
    positional = list(args.posonlyargs) + list(args.args)
    first_default = len(positional) - len(args.defaults)

    params = []
    for i, arg in enumerate(positional):
        kind = (
            inspect.Parameter.POSITIONAL_ONLY
            if i < len(args.posonlyargs)
            else inspect.Parameter.POSITIONAL_OR_KEYWORD
        )
        params.append(
            ParamDecl(
                arg.arg,
                kind,
                _unparse(arg.annotation),
                has_default=i >= first_default,
            )
        )

    if args.vararg is not None:
        params.append(
            ParamDecl(
                args.vararg.arg,
                inspect.Parameter.VAR_POSITIONAL,
                _unparse(args.vararg.annotation),
            )
        )

    for arg, default in zip(args.kwonlyargs, args.kw_defaults):
        params.append(
            ParamDecl(
                arg.arg,
                inspect.Parameter.KEYWORD_ONLY,
                _unparse(arg.annotation),
                has_default=default is not None,
            )
        )

    if args.kwarg is not None:
        params.append(
            ParamDecl(
                args.kwarg.arg,
                inspect.Parameter.VAR_KEYWORD,
                _unparse(args.kwarg.annotation),
            )
        )

    return params


def parse_declarations_from_source(source_file_path: str) -> Declarations:
    """Parse the top-level function declarations of a Python source file.

    The file is read and parsed with ``ast``; it is never imported, so
    declarations can be checked before the module is importable. Nested
    functions, methods and private (``_``-prefixed) functions are skipped.

    Parameters
    ----------
    source_file_path : str
        Path to the Python source file.

    Returns
    -------
    Declarations
        The parsed function declarations, in source order.
    """
    with open(source_file_path, encoding="utf-8") as f:
        source = f.read()

    tree = ast.parse(source, filename=source_file_path)

    functions = []
    for node in tree.body:
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        if node.name.startswith("_"):
            continue
        functions.append(
            FunctionDecl(
                name=node.name,
                params=_params_from_arguments(node.args),
                return_annotation=_unparse(node.returns),
                lineno=node.lineno,
                is_async=isinstance(node, ast.AsyncFunctionDef),
                parse_entry_point=source_file_path,
            )
        )

    logger.debug(
        "Parsed %d function declarations from %s",
        len(functions),
        source_file_path,
    )
    return Declarations(functions=functions)
