# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

import numpy as np


class ScalarType(str, Enum):
    """Numeric element kind of a tensor."""

    Byte = "Byte"
    Char = "Char"
    Short = "Short"
    Int = "Int"
    Long = "Long"
    Half = "Half"
    Float = "Float"
    Double = "Double"
    ComplexHalf = "ComplexHalf"
    ComplexFloat = "ComplexFloat"
    ComplexDouble = "ComplexDouble"
    Bool = "Bool"
    BFloat16 = "BFloat16"

    def to_numpy(self) -> np.dtype:
        """Return the numpy dtype of this scalar type.

        Raises
        ------
        TypeError
            If numpy has no equivalent dtype (``BFloat16``, ``ComplexHalf``).
        """
        dtype = SCALAR_TYPE_TO_NUMPY.get(self)
        if dtype is None:
            raise TypeError(f"{self.value} has no numpy equivalent.")
        return np.dtype(dtype)

    @classmethod
    def from_numpy(cls, dtype: Any) -> "ScalarType":
        np_dtype = np.dtype(dtype)
        for scalar_type, candidate in SCALAR_TYPE_TO_NUMPY.items():
            if candidate is not None and np.dtype(candidate) == np_dtype:
                return scalar_type
        raise ValueError(f"Unsupported numpy dtype: {np_dtype}")

    @classmethod
    def parse(cls, v: Any) -> "ScalarType":
        """
        Parse a scalar type representation into a ScalarType member.

        Parameters:
            v (Any): A ScalarType, a member name or alias (case-insensitive,
                e.g. "Float", "float32", "long"), or anything `numpy.dtype`
                accepts.

        Returns:
            ScalarType: The corresponding member.

        Raises:
            ValueError: If `v` does not name a known scalar type.
        """
        if isinstance(v, ScalarType):
            return v
        if isinstance(v, str):
            key = v.strip().lower()
            if key in SCALAR_TYPE_ALIASES:
                return SCALAR_TYPE_ALIASES[key]
        if v is None:
            # numpy.dtype(None) is float64.
            raise ValueError("Unknown scalar type: None")
        try:
            return cls.from_numpy(v)
        except TypeError:
            pass
        raise ValueError(f"Unknown scalar type: {v!r}")


SCALAR_TYPE_TO_NUMPY = {
    ScalarType.Byte: np.uint8,
    ScalarType.Char: np.int8,
    ScalarType.Short: np.int16,
    ScalarType.Int: np.int32,
    ScalarType.Long: np.int64,
    ScalarType.Half: np.float16,
    ScalarType.Float: np.float32,
    ScalarType.Double: np.float64,
    ScalarType.ComplexHalf: None,
    ScalarType.ComplexFloat: np.complex64,
    ScalarType.ComplexDouble: np.complex128,
    ScalarType.Bool: np.bool_,
    ScalarType.BFloat16: None,
}

SCALAR_TYPE_ALIASES = {
    **{member.value.lower(): member for member in ScalarType},
    "uint8": ScalarType.Byte,
    "int8": ScalarType.Char,
    "int16": ScalarType.Short,
    "int32": ScalarType.Int,
    "int64": ScalarType.Long,
    "float16": ScalarType.Half,
    "float32": ScalarType.Float,
    "float64": ScalarType.Double,
    "complex32": ScalarType.ComplexHalf,
    "complex64": ScalarType.ComplexFloat,
    "complex128": ScalarType.ComplexDouble,
    "bfloat16": ScalarType.BFloat16,
}


class Layout(str, Enum):
    """Memory layout kind of a tensor."""

    Strided = "Strided"
    Sparse = "Sparse"
    SparseCsr = "SparseCsr"
    Mkldnn = "Mkldnn"

    @classmethod
    def parse(cls, v: Any) -> "Layout":
        if isinstance(v, Layout):
            return v
        if isinstance(v, str):
            key = v.strip().lower().replace("_", "")
            for member in cls:
                if member.value.lower() == key:
                    return member
        raise ValueError(f"Unknown layout: {v!r}")


class DeviceType(str, Enum):
    CPU = "cpu"
    CUDA = "cuda"
    MPS = "mps"
    XPU = "xpu"
    Meta = "meta"

    @classmethod
    def parse(cls, v: Any) -> "DeviceType":
        if isinstance(v, DeviceType):
            return v
        if isinstance(v, str):
            key = v.strip().lower()
            for member in cls:
                if member.value == key:
                    return member
        raise ValueError(f"Unknown device type: {v!r}")


@dataclass(frozen=True)
class Device:
    """Device placement: a device type and an optional device index."""

    type: DeviceType
    index: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "type", DeviceType.parse(self.type))
        if self.index is not None:
            if isinstance(self.index, bool) or not isinstance(self.index, int):
                raise ValueError(
                    f"Device index must be an integer, got {self.index!r}"
                )
            if self.index < 0:
                raise ValueError(
                    f"Device index must be non-negative, got {self.index}"
                )

    @classmethod
    def parse(cls, v: Any) -> "Device":
        """Parse ``"cpu"``, ``"cuda:1"``, a DeviceType or a Device."""
        if isinstance(v, Device):
            return v
        if isinstance(v, DeviceType):
            return cls(v)
        if not isinstance(v, str):
            raise ValueError(f"Unknown device: {v!r}")

        type_str, sep, index_str = v.strip().partition(":")
        if not sep:
            return cls(DeviceType.parse(type_str))
        if not index_str.isdigit():
            raise ValueError(f"Invalid device string: {v!r}")
        return cls(DeviceType.parse(type_str), int(index_str))

    def __str__(self):
        if self.index is None:
            return self.type.value
        return f"{self.type.value}:{self.index}"


DEFAULT_SCALAR_TYPE = ScalarType.Float
DEFAULT_LAYOUT = Layout.Strided
DEFAULT_DEVICE = Device(DeviceType.CPU)
DEFAULT_PINNED_MEMORY = False


@dataclass(frozen=True, repr=False)
class TensorOptions:
    """A gathered bundle of tensor construction settings.

    Each of the four settings is independently optional. An unset setting
    resolves to the library default when read through the ``*_or_default``
    accessors. Builder methods return new instances; ``None`` unsets the
    corresponding setting.

    Example
    -------
    >>> TensorOptions().dtype("float64").device("cuda:0")
    TensorOptions(dtype=Double, layout=(unset), device=cuda:0, pinned_memory=(unset))
    """

    _dtype: Optional[ScalarType] = None
    _layout: Optional[Layout] = None
    _device: Optional[Device] = None
    _pinned_memory: Optional[bool] = None

    def dtype(self, dtype: Any) -> "TensorOptions":
        if dtype is not None:
            dtype = ScalarType.parse(dtype)
        return replace(self, _dtype=dtype)

    def layout(self, layout: Any) -> "TensorOptions":
        if layout is not None:
            layout = Layout.parse(layout)
        return replace(self, _layout=layout)

    def device(self, device: Any) -> "TensorOptions":
        if device is not None:
            device = Device.parse(device)
        return replace(self, _device=device)

    def pinned_memory(self, pinned_memory: Optional[bool]) -> "TensorOptions":
        if pinned_memory is not None:
            pinned_memory = bool(pinned_memory)
        return replace(self, _pinned_memory=pinned_memory)

    def has_dtype(self) -> bool:
        return self._dtype is not None

    def has_layout(self) -> bool:
        return self._layout is not None

    def has_device(self) -> bool:
        return self._device is not None

    def has_pinned_memory(self) -> bool:
        return self._pinned_memory is not None

    def dtype_opt(self) -> Optional[ScalarType]:
        return self._dtype

    def layout_opt(self) -> Optional[Layout]:
        return self._layout

    def device_opt(self) -> Optional[Device]:
        return self._device

    def pinned_memory_opt(self) -> Optional[bool]:
        return self._pinned_memory

    def scalar_type(self) -> ScalarType:
        return self._dtype if self._dtype is not None else DEFAULT_SCALAR_TYPE

    def layout_or_default(self) -> Layout:
        return self._layout if self._layout is not None else DEFAULT_LAYOUT

    def device_or_default(self) -> Device:
        return self._device if self._device is not None else DEFAULT_DEVICE

    def pinned_memory_or_default(self) -> bool:
        if self._pinned_memory is None:
            return DEFAULT_PINNED_MEMORY
        return self._pinned_memory

    def merge_in(self, other: "TensorOptions") -> "TensorOptions":
        """Return a copy where the settings present in ``other`` win."""
        merged = self
        if other.has_dtype():
            merged = merged.dtype(other.dtype_opt())
        if other.has_layout():
            merged = merged.layout(other.layout_opt())
        if other.has_device():
            merged = merged.device(other.device_opt())
        if other.has_pinned_memory():
            merged = merged.pinned_memory(other.pinned_memory_opt())
        return merged

    def __repr__(self):
        def fmt(value):
            if value is None:
                return "(unset)"
            if isinstance(value, Enum):
                return value.value
            return str(value)

        return (
            f"TensorOptions(dtype={fmt(self._dtype)}, "
            f"layout={fmt(self._layout)}, "
            f"device={fmt(self._device)}, "
            f"pinned_memory={fmt(self._pinned_memory)})"
        )
