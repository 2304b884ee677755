# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import functools
import inspect
import logging
import threading
import types
import weakref
from typing import Callable, Optional

from optscatter.detect import find_tensoroptions_arg, get_signature
from optscatter.errors import ScatteredParameterNameConflictError
from optscatter.options import Device, Layout, ScalarType, TensorOptions

logger = logging.getLogger(__name__)

SCATTERED_PARAMETERS = (
    ("dtype", Optional[ScalarType]),
    ("layout", Optional[Layout]),
    ("device", Optional[Device]),
    ("pin_memory", Optional[bool]),
)
"""Scattered parameters in canonical order, with their annotations."""

SCATTERED_PARAMETER_NAMES = tuple(name for name, _ in SCATTERED_PARAMETERS)

_BASE = "__optscatter_base"
_OPTIONS = "__optscatter_TensorOptions"

wrapper_template = """
{async_}def {name}{formal_args}:
    return {await_}{base}({actual_args})
"""

gather_template = (
    "{options}().dtype(dtype).device(device).layout(layout)"
    ".pinned_memory(pin_memory)"
)

_wrapper_cache: "weakref.WeakKeyDictionary[Callable, Callable]" = (
    weakref.WeakKeyDictionary()
)
_wrapper_cache_lock = threading.Lock()


class _SourceRef:
    """Stand-in default whose repr is a global name of the generated module."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return self.name


def partition_parameters(sig: inspect.Signature, index: int):
    """Split a parameter list around the TensorOptions parameter.

    Parameters
    ----------
    sig : inspect.Signature
        The gathered signature.
    index : int
        Zero-based index of the TensorOptions parameter.

    Returns
    -------
    before : list[inspect.Parameter]
    options : inspect.Parameter
    after : list[inspect.Parameter]
    """
    params = list(sig.parameters.values())
    return params[:index], params[index], params[index + 1 :]


def _scattered_params(options: inspect.Parameter) -> list[inspect.Parameter]:
    default = (
        inspect.Parameter.empty
        if options.default is inspect.Parameter.empty
        else None
    )
    return [
        inspect.Parameter(
            name, options.kind, default=default, annotation=annotation
        )
        for name, annotation in SCATTERED_PARAMETERS
    ]


def _check_name_conflicts(func_name: str, kept: list[inspect.Parameter]):
    for p in kept:
        if p.name in SCATTERED_PARAMETER_NAMES:
            raise ScatteredParameterNameConflictError(func_name, p.name)


def _scatter_signature(func_name, sig: inspect.Signature, index: int):
    before, options, after = partition_parameters(sig, index)
    _check_name_conflicts(func_name, before + after)
    return sig.replace(
        parameters=before + _scattered_params(options) + after
    )


def scattered_signature(func: Callable) -> inspect.Signature:
    """Return the signature a scattered wrapper of ``func`` would have.

    Aggregate-free signatures are returned unchanged.
    """
    sig = get_signature(func)
    index = find_tensoroptions_arg(func)
    if index is None:
        return sig
    return _scatter_signature(_qualname(func), sig, index)


def _qualname(func) -> str:
    return getattr(func, "__qualname__", repr(func))


def _identifier(func) -> str:
    name = getattr(func, "__name__", "")
    return name if name.isidentifier() else "scattered"


def _render_actual_arg(p: inspect.Parameter) -> str:
    if p.kind == inspect.Parameter.VAR_POSITIONAL:
        return f"*{p.name}"
    if p.kind == inspect.Parameter.VAR_KEYWORD:
        return f"**{p.name}"
    if p.kind == inspect.Parameter.KEYWORD_ONLY:
        return f"{p.name}={p.name}"
    return p.name


def _render_wrapper_source(
    name: str, base: Callable, sig: inspect.Signature, index: int
):
    """Render the wrapper definition and the globals it closes over.

    Annotations are left out of the rendered source; defaults are referenced
    by name so that arbitrary default objects survive the round trip.
    """
    before, options, after = partition_parameters(sig, index)
    scattered = sig.replace(
        parameters=before + _scattered_params(options) + after,
        return_annotation=inspect.Signature.empty,
    )

    namespace = {}
    formal_params = []
    for i, p in enumerate(scattered.parameters.values()):
        p = p.replace(annotation=inspect.Parameter.empty)
        if p.default is not inspect.Parameter.empty:
            ref = f"__optscatter_default_{i}"
            namespace[ref] = p.default
            p = p.replace(default=_SourceRef(ref))
        formal_params.append(p)
    formal_args = str(scattered.replace(parameters=formal_params))

    gathered = gather_template.format(options=_OPTIONS)
    if options.kind == inspect.Parameter.KEYWORD_ONLY:
        gathered = f"{options.name}={gathered}"

    actual_args = ", ".join(
        [_render_actual_arg(p) for p in before]
        + [gathered]
        + [_render_actual_arg(p) for p in after]
    )

    is_async = inspect.iscoroutinefunction(base)
    source = wrapper_template.format(
        async_="async " if is_async else "",
        await_="await " if is_async else "",
        name=name,
        formal_args=formal_args,
        base=_BASE,
        actual_args=actual_args,
    )
    return source, namespace


def _make_wrapper(func: Callable, sig: inspect.Signature, index: int):
    scattered = _scatter_signature(_qualname(func), sig, index)

    name = _identifier(func)
    source, namespace = _render_wrapper_source(name, func, sig, index)
    namespace[_BASE] = func
    namespace[_OPTIONS] = TensorOptions

    logger.debug("Scattered wrapper for %s:%s", _qualname(func), source)
    exec(source, namespace)
    wrapper = namespace[name]

    assert isinstance(wrapper, types.FunctionType)

    functools.update_wrapper(wrapper, func)
    wrapper.__signature__ = scattered
    wrapper.__annotations__ = {
        p.name: p.annotation
        for p in scattered.parameters.values()
        if p.annotation is not inspect.Parameter.empty
    }
    if scattered.return_annotation is not inspect.Signature.empty:
        wrapper.__annotations__["return"] = scattered.return_annotation
    return wrapper


def scatter_tensor_options(func: Callable) -> Callable:
    """Adapt a function taking a gathered TensorOptions to scattered arguments.

    If ``func`` takes a TensorOptions parameter, a new function is created
    that takes ``dtype``, ``layout``, ``device`` and ``pin_memory`` in its
    place, gathers them into a TensorOptions and calls ``func``. Parameters
    before and after the TensorOptions keep their order, kind and defaults.
    If ``func`` takes no TensorOptions parameter, it is returned unmodified.

    Naming can be confusing here: the transformation scatters the parameters
    of the signature, but when seen in a running program the wrapper takes
    scattered arguments and gathers them into a TensorOptions object.

    Parameters
    ----------
    func : Callable
        The base function.

    Returns
    -------
    Callable
        ``func`` itself, or the scattered wrapper. Wrappers of plain
        functions are cached, so adapting the same function twice returns
        the same wrapper.

    Raises
    ------
    MultipleTensorOptionsError
        If ``func`` takes more than one TensorOptions parameter.
    UnsupportedParameterKindError
        If the TensorOptions parameter is ``*args`` or ``**kwargs``.
    ScatteredParameterNameConflictError
        If another parameter is named like a scattered parameter.
    """
    cacheable = isinstance(func, types.FunctionType)
    if cacheable:
        with _wrapper_cache_lock:
            cached = _wrapper_cache.get(func)
        if cached is not None:
            return cached

    sig = get_signature(func)
    index = find_tensoroptions_arg(func)
    if index is None:
        # No TensorOptions parameter, don't wrap anything.
        logger.debug("%s has no TensorOptions parameter", _qualname(func))
        return func

    wrapper = _make_wrapper(func, sig, index)
    if cacheable:
        with _wrapper_cache_lock:
            wrapper = _wrapper_cache.setdefault(func, wrapper)
    return wrapper
