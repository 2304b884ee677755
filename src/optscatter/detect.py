# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import inspect
import logging
import typing
from typing import Any, Callable, Union

from optscatter.errors import (
    MultipleTensorOptionsError,
    UnsupportedParameterKindError,
)
from optscatter.options import TensorOptions

logger = logging.getLogger(__name__)

TENSOROPTIONS_NAMES = {
    "TensorOptions",
    "optscatter.TensorOptions",
    "optscatter.options.TensorOptions",
}
"""Source spellings of the TensorOptions annotation."""

VARIADIC_KINDS = (
    inspect.Parameter.VAR_POSITIONAL,
    inspect.Parameter.VAR_KEYWORD,
)


def _decay(annotation: Any) -> Any:
    """Strip qualification from an annotation.

    ``Annotated[T, ...]`` decays to ``T`` and a quoted forward reference
    decays to its stripped text. Any other annotation is returned as is.
    """
    while typing.get_origin(annotation) is typing.Annotated:
        annotation = typing.get_args(annotation)[0]
    if isinstance(annotation, typing.ForwardRef):
        annotation = annotation.__forward_arg__
    if isinstance(annotation, str):
        annotation = annotation.strip().strip("'\"").strip()
    return annotation


def is_tensoroptions_annotation_str(annotation: str | None) -> bool:
    """Match the source text of an annotation against TensorOptions.

    ``Annotated[TensorOptions, ...]`` spellings are accepted; ``Optional``
    and unions are not.
    """
    if not annotation:
        return False
    text = annotation.strip().strip("'\"").strip()
    for prefix in ("Annotated[", "typing.Annotated[", "typing_extensions.Annotated["):
        if text.startswith(prefix) and text.endswith("]"):
            inner = text[len(prefix) : -1]
            # The first element of Annotated is the qualified type.
            depth = 0
            for i, ch in enumerate(inner):
                if ch == "[":
                    depth += 1
                elif ch == "]":
                    depth -= 1
                elif ch == "," and depth == 0:
                    inner = inner[:i]
                    break
            return is_tensoroptions_annotation_str(inner)
    return text in TENSOROPTIONS_NAMES


def is_tensoroptions_arg(annotation: Any) -> bool:
    """Return True if ``annotation`` decays to ``TensorOptions``.

    Parameters
    ----------
    annotation : Any
        A parameter annotation: a type, a typing construct or source text.

    Returns
    -------
    bool
        True for ``TensorOptions``, ``Annotated[TensorOptions, ...]`` and the
        quoted spellings of either. ``Optional[TensorOptions]`` is a different
        type and yields False, as does an empty annotation.
    """
    if annotation is inspect.Parameter.empty:
        return False
    decayed = _decay(annotation)
    if isinstance(decayed, str):
        return is_tensoroptions_annotation_str(decayed)
    return decayed is TensorOptions


def _resolved_hints(func: Callable) -> dict[str, Any]:
    # Keeps Annotated metadata; None defaults are not wrapped in Optional.
    try:
        return inspect.get_annotations(func, eval_str=True)
    except (NameError, SyntaxError, TypeError, AttributeError):
        # Unresolvable forward references fall back to raw annotation text.
        return {}


def get_signature(func_or_sig: Union[Callable, inspect.Signature]):
    """Return the signature of a callable with annotations resolved.

    Parameters
    ----------
    func_or_sig : Callable | inspect.Signature
        A function, or an already-built signature which is returned as is.

    Returns
    -------
    inspect.Signature
    """
    if isinstance(func_or_sig, inspect.Signature):
        return func_or_sig

    sig = inspect.signature(func_or_sig)
    hints = _resolved_hints(func_or_sig)
    if not hints:
        return sig

    params = [
        p.replace(annotation=hints[p.name]) if p.name in hints else p
        for p in sig.parameters.values()
    ]
    return_annotation = hints.get("return", sig.return_annotation)
    return sig.replace(parameters=params, return_annotation=return_annotation)


def _func_name(func_or_sig) -> str:
    if isinstance(func_or_sig, inspect.Signature):
        return f"<signature {func_or_sig}>"
    return getattr(func_or_sig, "__qualname__", repr(func_or_sig))


def tensoroptions_arg_indices(
    func_or_sig: Union[Callable, inspect.Signature],
) -> list[int]:
    """Return the zero-based indices of every TensorOptions parameter."""
    sig = get_signature(func_or_sig)
    return [
        i
        for i, p in enumerate(sig.parameters.values())
        if is_tensoroptions_arg(p.annotation)
    ]


def count_tensoroptions_args(
    func_or_sig: Union[Callable, inspect.Signature],
) -> int:
    return len(tensoroptions_arg_indices(func_or_sig))


def find_tensoroptions_arg(
    func_or_sig: Union[Callable, inspect.Signature],
) -> int | None:
    """Locate the TensorOptions parameter of a callable.

    Parameters
    ----------
    func_or_sig : Callable | inspect.Signature
        The function (or its signature) to scan.

    Returns
    -------
    int | None
        The zero-based index of the single TensorOptions parameter, or None
        when the signature has none.

    Raises
    ------
    MultipleTensorOptionsError
        If more than one parameter is a TensorOptions.
    UnsupportedParameterKindError
        If the TensorOptions parameter is ``*args`` or ``**kwargs``.
    """
    sig = get_signature(func_or_sig)
    indices = tensoroptions_arg_indices(sig)
    params = list(sig.parameters.values())

    if len(indices) > 1:
        raise MultipleTensorOptionsError(
            _func_name(func_or_sig), [params[i].name for i in indices]
        )
    if not indices:
        return None

    index = indices[0]
    param = params[index]
    if param.kind in VARIADIC_KINDS:
        raise UnsupportedParameterKindError(
            _func_name(func_or_sig), param.name, param.kind.description
        )

    logger.debug(
        "%s: TensorOptions parameter %s at index %d",
        _func_name(func_or_sig),
        param.name,
        index,
    )
    return index


def has_tensoroptions_arg(
    func_or_sig: Union[Callable, inspect.Signature],
) -> bool:
    """Return True if the callable takes exactly one TensorOptions parameter.

    Raises MultipleTensorOptionsError when it takes more than one.
    """
    return find_tensoroptions_arg(func_or_sig) is not None
