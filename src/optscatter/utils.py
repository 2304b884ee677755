# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from optscatter.static.decl import ParamDecl


def _apply_prefix_removal(name: str, prefix_to_remove: list[str]) -> str:
    """
    Remove the first matching prefix from a name.

    Parameters:
        name (str): The original function name.
        prefix_to_remove (list[str]): Ordered list of prefixes to try; the first prefix that matches the start of `name` will be removed.

    Returns:
        str: The name with the first matching prefix removed, or the original name if no prefixes match.
    """
    for prefix in prefix_to_remove:
        if name.startswith(prefix):
            return name[len(prefix) :]

    return name


def paramdecl_to_str(param: ParamDecl, default: str | None) -> str:
    """Convert a ``ParamDecl`` into a Python formal-parameter string.

    ``default`` is the source text of the default value, used only when the
    parameter declares one.
    """
    prefix = {
        inspect.Parameter.VAR_POSITIONAL: "*",
        inspect.Parameter.VAR_KEYWORD: "**",
    }.get(param.kind, "")

    fml_arg = prefix + param.name
    if param.annotation:
        fml_arg += f": {param.annotation}"
        if param.has_default:
            fml_arg += f" = {default}"
    elif param.has_default:
        fml_arg += f"={default}"
    return fml_arg


def assemble_formal_args_string(
    params: list[ParamDecl], defaults: dict[str, str]
) -> str:
    """Assemble a comma separated formal parameter list.

    Inserts the ``/`` and ``*`` markers that the parameter kinds require.
    """
    formal_args = []
    seen_var_positional = False
    kwonly_marker_emitted = False
    for i, p in enumerate(params):
        if p.kind == inspect.Parameter.VAR_POSITIONAL:
            seen_var_positional = True
        if (
            p.kind == inspect.Parameter.KEYWORD_ONLY
            and not seen_var_positional
            and not kwonly_marker_emitted
        ):
            formal_args.append("*")
            kwonly_marker_emitted = True

        formal_args.append(paramdecl_to_str(p, defaults.get(p.name)))

        is_last_posonly = p.kind == inspect.Parameter.POSITIONAL_ONLY and (
            i + 1 == len(params)
            or params[i + 1].kind != inspect.Parameter.POSITIONAL_ONLY
        )
        if is_last_posonly:
            formal_args.append("/")

    return ", ".join(formal_args)


def assemble_actual_args_string(params: list[ParamDecl]) -> list[str]:
    """Assemble the arguments forwarding ``params`` to the base function."""
    actual_args = []
    for p in params:
        if p.kind == inspect.Parameter.VAR_POSITIONAL:
            actual_args.append(f"*{p.name}")
        elif p.kind == inspect.Parameter.VAR_KEYWORD:
            actual_args.append(f"**{p.name}")
        elif p.kind == inspect.Parameter.KEYWORD_ONLY:
            actual_args.append(f"{p.name}={p.name}")
        else:
            actual_args.append(p.name)
    return actual_args
