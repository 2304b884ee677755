# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from optscatter.options import (
    Device,
    DeviceType,
    Layout,
    ScalarType,
    TensorOptions,
)
from optscatter.detect import (
    count_tensoroptions_args,
    find_tensoroptions_arg,
    has_tensoroptions_arg,
    is_tensoroptions_arg,
)
from optscatter.scatter import scatter_tensor_options, scattered_signature
from optscatter.hacky_wrapper import hacky_wrapper_for_legacy_signatures
from optscatter.errors import (
    BaseScatterError,
    MultipleTensorOptionsError,
    ScatteredParameterNameConflictError,
    UnsupportedParameterKindError,
)

import importlib.metadata

__version__ = importlib.metadata.version("optscatter")

__all__ = [
    "__version__",
    "Device",
    "DeviceType",
    "Layout",
    "ScalarType",
    "TensorOptions",
    "count_tensoroptions_args",
    "find_tensoroptions_arg",
    "has_tensoroptions_arg",
    "is_tensoroptions_arg",
    "scatter_tensor_options",
    "scattered_signature",
    "hacky_wrapper_for_legacy_signatures",
    "BaseScatterError",
    "MultipleTensorOptionsError",
    "ScatteredParameterNameConflictError",
    "UnsupportedParameterKindError",
]
