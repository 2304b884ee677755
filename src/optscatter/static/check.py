# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass

from optscatter.errors import (
    BaseScatterError,
    MultipleTensorOptionsError,
    ScatteredParameterNameConflictError,
    UnsupportedParameterKindError,
)
from optscatter.scatter import SCATTERED_PARAMETER_NAMES
from optscatter.static.decl import Declarations, FunctionDecl
from optscatter.static.renderer import BaseRenderer

RESERVED_PARAMETER_NAMES = SCATTERED_PARAMETER_NAMES + (
    BaseRenderer.base_module_alias,
    "TensorOptions",
)
"""Names a kept parameter may not take: the scattered parameters and the
globals a rendered wrapper body refers to."""


@dataclass(frozen=True)
class Violation:
    path: str
    lineno: int
    func_name: str
    message: str

    def __str__(self):
        return f"{self.path}:{self.lineno}: {self.func_name}: {self.message}"


def find_tensoroptions_param(decl: FunctionDecl) -> int | None:
    """Locate the TensorOptions parameter of a declaration.

    The source-level counterpart of ``optscatter.detect.find_tensoroptions_arg``
    that additionally rejects kept parameters named like scattered ones or
    like the globals of the rendered wrapper.

    Raises
    ------
    MultipleTensorOptionsError
    UnsupportedParameterKindError
    ScatteredParameterNameConflictError
    """
    indices = decl.tensoroptions_param_indices()
    if len(indices) > 1:
        raise MultipleTensorOptionsError(
            decl.name, [decl.params[i].name for i in indices]
        )
    if not indices:
        return None

    index = indices[0]
    options = decl.params[index]
    if options.is_variadic:
        raise UnsupportedParameterKindError(
            decl.name, options.name, options.kind.description
        )
    for i, p in enumerate(decl.params):
        if i != index and p.name in RESERVED_PARAMETER_NAMES:
            raise ScatteredParameterNameConflictError(decl.name, p.name)
    return index


def check_declarations(decls: Declarations) -> list[Violation]:
    """Check every declaration against the scattering contract.

    Returns
    -------
    list[Violation]
        One entry per offending function, in source order. Empty when every
        declaration can be scattered or passed through.
    """
    violations = []
    for decl in decls.functions:
        try:
            find_tensoroptions_param(decl)
        except BaseScatterError as e:
            violations.append(
                Violation(decl.parse_entry_point, decl.lineno, decl.name, str(e))
            )
    return violations
