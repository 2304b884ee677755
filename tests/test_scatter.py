# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
import inspect
import itertools
from typing import Annotated, Optional

import pytest

from optscatter import (
    Device,
    Layout,
    MultipleTensorOptionsError,
    ScalarType,
    ScatteredParameterNameConflictError,
    TensorOptions,
    UnsupportedParameterKindError,
    scatter_tensor_options,
    scattered_signature,
)


def echo_options(size: int, options: TensorOptions) -> tuple:
    return size, options


def no_options(size: int, name: str) -> int:
    return size


DTYPES = [None, ScalarType.Double]
LAYOUTS = [None, Layout.Sparse]
DEVICES = [None, Device.parse("cuda:1")]
PIN_MEMORY = [None, True]


def test_passthrough_returns_same_function():
    assert scatter_tensor_options(no_options) is no_options


def test_wrapper_is_a_new_function():
    wrapper = scatter_tensor_options(echo_options)
    assert wrapper is not echo_options
    assert wrapper.__wrapped__ is echo_options
    assert wrapper.__name__ == "echo_options"


def test_idempotent():
    wrapper = scatter_tensor_options(echo_options)
    assert scatter_tensor_options(wrapper) is wrapper


def test_wrapper_is_cached():
    assert scatter_tensor_options(echo_options) is scatter_tensor_options(
        echo_options
    )


@pytest.mark.parametrize(
    "dtype, layout, device, pin_memory",
    list(itertools.product(DTYPES, LAYOUTS, DEVICES, PIN_MEMORY)),
)
def test_all_present_absent_combinations(dtype, layout, device, pin_memory):
    wrapper = scatter_tensor_options(echo_options)

    expected = TensorOptions()
    if dtype is not None:
        expected = expected.dtype(dtype)
    if layout is not None:
        expected = expected.layout(layout)
    if device is not None:
        expected = expected.device(device)
    if pin_memory is not None:
        expected = expected.pinned_memory(pin_memory)

    got = wrapper(7, dtype, layout, device, pin_memory)
    assert got == echo_options(7, expected)

    _, options = got
    assert options.has_dtype() == (dtype is not None)
    assert options.has_layout() == (layout is not None)
    assert options.has_device() == (device is not None)
    assert options.has_pinned_memory() == (pin_memory is not None)


def test_int64_and_const_ref_scenario():
    def base(n: int, options: Annotated[TensorOptions, "const&"]) -> int:
        return n * 10 + (1 if options.dtype_opt() == ScalarType.Float else 0)

    wrapper = scatter_tensor_options(base)
    params = list(inspect.signature(wrapper).parameters)
    assert params == ["n", "dtype", "layout", "device", "pin_memory"]
    assert inspect.signature(wrapper).return_annotation is int

    assert wrapper(5, ScalarType.Float, None, None, None) == base(
        5, TensorOptions().dtype(ScalarType.Float)
    )
    assert wrapper(5, ScalarType.Float, None, None, None) == 51


def test_before_and_after_are_forwarded_in_order():
    calls = []

    def base(a: str, options: TensorOptions, b: list) -> str:
        calls.append((a, options, b))
        return a + "-" + str(len(b))

    wrapper = scatter_tensor_options(base)
    sig = inspect.signature(wrapper)
    assert list(sig.parameters) == [
        "a",
        "dtype",
        "layout",
        "device",
        "pin_memory",
        "b",
    ]
    assert sig.parameters["dtype"].annotation == Optional[ScalarType]
    assert sig.parameters["layout"].annotation == Optional[Layout]
    assert sig.parameters["device"].annotation == Optional[Device]
    assert sig.parameters["pin_memory"].annotation == Optional[bool]
    assert sig.parameters["b"].annotation is list

    payload = [1, 2, 3]
    assert wrapper("x", ScalarType.Long, None, "cpu", False, payload) == "x-3"
    a, options, b = calls[0]
    assert a == "x"
    assert b is payload
    assert options == TensorOptions().dtype(ScalarType.Long).device(
        "cpu"
    ).pinned_memory(False)


def test_return_value_is_not_copied():
    sentinel = object()

    def base(options: TensorOptions):
        return sentinel

    assert scatter_tensor_options(base)(None, None, None, None) is sentinel


def test_options_first_and_last():
    def first(options: TensorOptions, x: int):
        return options, x

    def last(x: int, options: TensorOptions):
        return x, options

    assert scatter_tensor_options(first)(ScalarType.Int, None, None, None, 3) == (
        TensorOptions().dtype(ScalarType.Int),
        3,
    )
    assert scatter_tensor_options(last)(3, None, None, None, True) == (
        3,
        TensorOptions().pinned_memory(True),
    )


def test_keyword_only_options():
    def base(x, *, options: TensorOptions = TensorOptions(), scale=2):
        return x * scale, options

    wrapper = scatter_tensor_options(base)
    sig = inspect.signature(wrapper)
    for name in ("dtype", "layout", "device", "pin_memory"):
        assert sig.parameters[name].kind == inspect.Parameter.KEYWORD_ONLY
        assert sig.parameters[name].default is None

    assert wrapper(3) == (6, TensorOptions())
    assert wrapper(3, device="cuda", scale=3) == (
        9,
        TensorOptions().device("cuda"),
    )


def test_positional_only_and_variadic_forwarding():
    def base(a, /, options: TensorOptions, *rest, flag=False, **extra):
        return a, options, rest, flag, extra

    wrapper = scatter_tensor_options(base)
    sig = inspect.signature(wrapper)
    assert sig.parameters["a"].kind == inspect.Parameter.POSITIONAL_ONLY

    got = wrapper(1, "float64", None, None, None, 2, 3, flag=True, tag="t")
    assert got == (
        1,
        TensorOptions().dtype(ScalarType.Double),
        (2, 3),
        True,
        {"tag": "t"},
    )


def test_defaults_after_options_are_kept():
    marker = object()

    def base(n, options: TensorOptions = TensorOptions(), fill=marker):
        return n, options, fill

    wrapper = scatter_tensor_options(base)
    assert inspect.signature(wrapper).parameters["fill"].default is marker
    assert wrapper(1) == (1, TensorOptions(), marker)
    assert wrapper(1, layout="sparse") == (
        1,
        TensorOptions().layout(Layout.Sparse),
        marker,
    )


def test_base_exceptions_propagate():
    def base(options: TensorOptions):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        scatter_tensor_options(base)(None, None, None, None)


def test_string_annotation_is_detected():
    def base(n: int, options: "TensorOptions"):
        return options

    wrapper = scatter_tensor_options(base)
    assert wrapper(0, None, "strided", None, None) == TensorOptions().layout(
        Layout.Strided
    )


def test_optional_options_is_not_scattered():
    def base(options: Optional[TensorOptions] = None):
        return options

    assert scatter_tensor_options(base) is base


@pytest.mark.parametrize(
    "position",
    ["adjacent", "separated", "ends"],
)
def test_multiple_options_fail_at_definition(position):
    if position == "adjacent":

        def base(a: TensorOptions, b: TensorOptions, c: int):
            pass

    elif position == "separated":

        def base(a: TensorOptions, c: int, b: TensorOptions):
            pass

    else:

        def base(c: int, a: TensorOptions, d: int, b: "TensorOptions"):
            pass

    with pytest.raises(MultipleTensorOptionsError) as e:
        scatter_tensor_options(base)
    assert set(e.value.param_names) == {"a", "b"}


def test_variadic_options_rejected():
    def base(*options: TensorOptions):
        pass

    with pytest.raises(UnsupportedParameterKindError):
        scatter_tensor_options(base)


def test_name_conflict_rejected():
    def base(device: int, options: TensorOptions):
        pass

    with pytest.raises(ScatteredParameterNameConflictError) as e:
        scatter_tensor_options(base)
    assert e.value.param_name == "device"


def test_scattered_signature_of_passthrough():
    assert scattered_signature(no_options) == inspect.signature(no_options)


def test_bound_method():
    class Factory:
        def make(self, n: int, options: TensorOptions):
            return self, n, options

    factory = Factory()
    wrapper = scatter_tensor_options(factory.make)
    assert list(inspect.signature(wrapper).parameters)[0] == "n"
    assert wrapper(2, None, None, "cpu", None) == (
        factory,
        2,
        TensorOptions().device("cpu"),
    )


def test_async_base_gets_async_wrapper():
    async def base(size: int, options: TensorOptions):
        return size, options

    wrapper = scatter_tensor_options(base)
    assert inspect.iscoroutinefunction(wrapper)
    assert asyncio.run(wrapper(5, "long", None, None, None)) == (
        5,
        TensorOptions().dtype(ScalarType.Long),
    )
