# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from typing import Callable, TypeVar

from optscatter.scatter import scatter_tensor_options

F = TypeVar("F", bound=Callable)


def hacky_wrapper_for_legacy_signatures(func: F) -> F:
    """Return the function to register in place of a legacy kernel.

    Legacy kernels take a gathered ``TensorOptions`` parameter, while the
    calling convention of registered operators passes ``dtype``, ``layout``,
    ``device`` and ``pin_memory`` separately. Kernels without a
    ``TensorOptions`` parameter are returned as they are.

    Can be used as a decorator:

    >>> @hacky_wrapper_for_legacy_signatures
    ... def empty(size: int, options: TensorOptions): ...
    """
    return scatter_tensor_options(func)
