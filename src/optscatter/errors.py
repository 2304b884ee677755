# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0


class BaseScatterError(Exception):
    pass


class MultipleTensorOptionsError(BaseScatterError):
    """Indicate that a signature carries more than one TensorOptions parameter.

    A scattered calling convention has exactly one group of ``dtype``,
    ``layout``, ``device`` and ``pin_memory`` parameters. A signature with two
    gathered ``TensorOptions`` parameters cannot be mapped onto it, so the
    adapter refuses the function when it is defined rather than when it is
    called.
    """

    def __init__(self, func_name: str, param_names: list[str]):
        self._func_name = func_name
        self._param_names = list(param_names)
        super().__init__(
            f"Function {func_name} has multiple TensorOptions parameters "
            f"({', '.join(self._param_names)}). We support at most one."
        )

    @property
    def func_name(self):
        return self._func_name

    @property
    def param_names(self):
        return self._param_names


class UnsupportedParameterKindError(BaseScatterError):
    """Indicate that the TensorOptions parameter is variadic.

    ``*args: TensorOptions`` and ``**kwargs: TensorOptions`` have no single
    position to scatter into.
    """

    def __init__(self, func_name: str, param_name: str, kind: str):
        self._func_name = func_name
        self._param_name = param_name
        super().__init__(
            f"TensorOptions parameter {param_name} of {func_name} is {kind}; "
            "only positional or keyword parameters can be scattered."
        )

    @property
    def func_name(self):
        return self._func_name

    @property
    def param_name(self):
        return self._param_name


class ScatteredParameterNameConflictError(BaseScatterError):
    """Indicate that a kept parameter shadows a scattered parameter name."""

    def __init__(self, func_name: str, param_name: str):
        self._func_name = func_name
        self._param_name = param_name
        super().__init__(
            f"Parameter {param_name} of {func_name} conflicts with a name "
            "used by the scattered wrapper."
        )

    @property
    def func_name(self):
        return self._func_name

    @property
    def param_name(self):
        return self._param_name


class BindingNameConflictError(BaseScatterError):
    """Indicate that a generated binding name is not unique.

    This error is raised when a function, after prefix removal, shares its
    Python name with a previously generated binding.
    """

    def __init__(self, binding_name: str):
        self._binding_name = binding_name
        super().__init__(f"Binding name {binding_name} is not unique.")

    @property
    def binding_name(self):
        return self._binding_name
