# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import inspect
from logging import getLogger
from warnings import warn

from optscatter.errors import BindingNameConflictError
from optscatter.scatter import SCATTERED_PARAMETER_NAMES
from optscatter.static.check import find_tensoroptions_param
from optscatter.static.decl import FunctionDecl, ParamDecl
from optscatter.static.renderer import (
    BaseRenderer,
    get_rendered_imports,
)
from optscatter.utils import (
    _apply_prefix_removal,
    assemble_actual_args_string,
    assemble_formal_args_string,
)

file_logger = getLogger(f"{__name__}")

function_apis_registry: set[str] = set()
"""A set of created function API names."""

SCATTERED_ANNOTATIONS = {
    "dtype": "Optional[ScalarType]",
    "layout": "Optional[Layout]",
    "device": "Optional[Device]",
    "pin_memory": "Optional[bool]",
}


def should_skip_function(
    decl: FunctionDecl, excludes: list[str], skip_prefix: str | None
) -> bool:
    """Check if a function should be skipped based on various criteria."""
    if decl.name in excludes:
        return True

    if skip_prefix and decl.name.startswith(skip_prefix):
        return True

    return False


class StaticFunctionRenderer(BaseRenderer):
    """Base class for function static bindings renderer.

    Parameters
    ----------
    decl: optscatter.static.decl.FunctionDecl
        A single function declaration parsed from Python source
    module: str
        The import path of the module that defines the base function
    function_prefix_removal: list[str]
        Prefixes to remove from the function name to produce the exported name
    """

    def __init__(
        self,
        decl: FunctionDecl,
        module: str,
        function_prefix_removal: list[str] = [],
    ):
        super().__init__(decl)
        self._module = module
        self._python_func_name = _apply_prefix_removal(
            decl.name, function_prefix_removal
        )
        if not self._python_func_name.isidentifier():
            raise ValueError(
                f"Prefix removal turns {decl.name} into an invalid name "
                f"{self._python_func_name!r}"
            )

        if self._python_func_name in function_apis_registry:
            raise BindingNameConflictError(self._python_func_name)
        function_apis_registry.add(self._python_func_name)

        self.Imports.add(
            self.BaseModuleImport.format(
                module=module, alias=self.base_module_alias
            )
        )

    @property
    def func_name_python(self):
        """
        Python-visible function name after applying configured prefix removal.

        Returns:
            str: The Python-exposed function name with any configured prefixes removed.
        """
        return self._python_func_name

    @property
    def base_func_ref(self):
        return f"{self.base_module_alias}.{self._decl.name}"

    def render_python(self) -> str:
        raise NotImplementedError()


class StaticPassthroughFunctionRenderer(StaticFunctionRenderer):
    """Re-export a function that takes no TensorOptions parameter."""

    passthrough_template = """
{func_name} = {base_func}
"""

    def __init__(self, decl, module, function_prefix_removal=[]):
        super().__init__(decl, module, function_prefix_removal)
        self._passthrough_symbols.append(self._python_func_name)

    def render_python(self):
        return self.passthrough_template.format(
            func_name=self._python_func_name, base_func=self.base_func_ref
        )


class StaticScatterFunctionRenderer(StaticFunctionRenderer):
    """Render a scattered wrapper of a function taking a TensorOptions.

    Parameters
    ----------
    decl: optscatter.static.decl.FunctionDecl
        The function declaration; must carry one TensorOptions parameter
    module: str
        The import path of the module that defines the base function
    options_index: int
        Zero-based index of the TensorOptions parameter
    function_prefix_removal: list[str]
        Prefixes to remove from the function name to produce the exported name
    """

    defaults_template = """
{defaults_name} = {{
    p.name: p.default
    for p in inspect.signature({base_func}).parameters.values()
}}
"""

    wrapper_template = """
{async_}def {func_name}({formal_args}){return_annotation}:
    return {await_}{base_func}({actual_args})
"""

    gather_template = (
        "TensorOptions().dtype(dtype).device(device).layout(layout)"
        ".pinned_memory(pin_memory)"
    )

    def __init__(
        self,
        decl: FunctionDecl,
        module: str,
        options_index: int,
        function_prefix_removal: list[str] = [],
    ):
        super().__init__(decl, module, function_prefix_removal)
        self._options_index = options_index

        self.Imports.add("from typing import Optional")
        self.Imports.add(
            "from optscatter.options import "
            "Device, Layout, ScalarType, TensorOptions"
        )

        params = decl.params
        self._before = params[:options_index]
        self._options = params[options_index]
        self._after = params[options_index + 1 :]

        self._scattered = [
            ParamDecl(
                name,
                self._options.kind,
                SCATTERED_ANNOTATIONS[name],
                has_default=self._options.has_default,
            )
            for name in SCATTERED_PARAMETER_NAMES
        ]

        self._defaults_name = f"_{self._python_func_name}_defaults"

        self._function_symbols.append(self._python_func_name)

    def _kept_params_with_default(self):
        return [p for p in self._before + self._after if p.has_default]

    def _render_defaults(self) -> str:
        """Render the lookup of the base function's default values.

        Default expressions are evaluated once, by the base module; the
        wrapper reuses the resulting objects.
        """
        if not self._kept_params_with_default():
            return ""
        self.Imports.add("import inspect")
        return self.defaults_template.format(
            defaults_name=self._defaults_name, base_func=self.base_func_ref
        )

    def _render_wrapper(self) -> str:
        defaults = {
            p.name: f'{self._defaults_name}["{p.name}"]'
            for p in self._kept_params_with_default()
        }
        defaults.update({p.name: "None" for p in self._scattered})

        formal_args = assemble_formal_args_string(
            self._before + self._scattered + self._after, defaults
        )

        gathered = self.gather_template
        if self._options.kind == inspect.Parameter.KEYWORD_ONLY:
            gathered = f"{self._options.name}={gathered}"
        actual_args = ", ".join(
            assemble_actual_args_string(self._before)
            + [gathered]
            + assemble_actual_args_string(self._after)
        )

        return_annotation = ""
        if self._decl.return_annotation:
            return_annotation = f" -> {self._decl.return_annotation}"

        return self.wrapper_template.format(
            async_="async " if self._decl.is_async else "",
            await_="await " if self._decl.is_async else "",
            func_name=self._python_func_name,
            formal_args=formal_args,
            return_annotation=return_annotation,
            base_func=self.base_func_ref,
            actual_args=actual_args,
        )

    def render_python(self):
        """Render the scattered wrapper.

        Return
        ------
        python binding: str
            The string containing the rendered python function binding.
        """
        return self._render_defaults() + self._render_wrapper()


class StaticFunctionsRenderer(BaseRenderer):
    """Render a collection of function declarations.

    Functions with one TensorOptions parameter get a scattered wrapper, the
    others are re-exported unchanged.

    Parameters
    ----------

    decls: list[optscatter.static.decl.FunctionDecl]
        A list of function declarations parsed from Python source
    module: str
        The import path of the module that defines the base functions
    excludes: list[str], Optional
        A list of function names to exclude from the generation
    skip_prefix: str | None
        If function name is prefixed with `skip_prefix`, they are skipped.
        Has no effect if `None` or empty string.
    function_prefix_removal: list[str], default []
        List of prefixes to remove from function names.
        For example, ["legacy_"] would remove "legacy_" from function names.
    """

    def __init__(
        self,
        decls: list[FunctionDecl],
        module: str,
        excludes: list[str] = [],
        skip_prefix: str | None = None,
        function_prefix_removal: list[str] = [],
    ):
        self._decls = decls
        self._module = module
        self._excludes = excludes
        self._skip_prefix = skip_prefix
        self._function_prefix_removal = function_prefix_removal

        self._python_rendered: list[str] = []

    def _should_skip_function(self, decl: FunctionDecl) -> bool:
        return should_skip_function(decl, self._excludes, self._skip_prefix)

    def _create_renderer(
        self, decl: FunctionDecl
    ) -> StaticFunctionRenderer | None:
        """Create a renderer for a function declaration.

        Raises
        ------
        MultipleTensorOptionsError, UnsupportedParameterKindError,
        ScatteredParameterNameConflictError
            If the declaration breaks the scattering contract.
        """
        options_index = find_tensoroptions_param(decl)
        try:
            if options_index is None:
                return StaticPassthroughFunctionRenderer(
                    decl, self._module, self._function_prefix_removal
                )
            return StaticScatterFunctionRenderer(
                decl,
                self._module,
                options_index,
                self._function_prefix_removal,
            )
        except BindingNameConflictError as e:
            warn(
                f"Skipping function {decl.name} in {decl.parse_entry_point}: "
                f"duplicate binding name {e.binding_name}"
            )
            return None

    def _render(self, with_imports: bool):
        """Render python bindings."""
        for decl in self._decls:
            if self._should_skip_function(decl):
                continue

            renderer = self._create_renderer(decl)
            if renderer:
                self._python_rendered.append(renderer.render_python())

        self._python_str = ""

        if with_imports:
            self._python_str += (
                self.FutureImport + "\n\n" + get_rendered_imports()
            )

        self._python_str += "\n" + "\n".join(self._python_rendered)

    def render_as_str(self, *, with_imports: bool) -> str:
        """Return the final assembled bindings in script. This output should be final."""

        self._render(with_imports)
        output = self._python_str
        file_logger.debug(output)

        return output


def clear_function_apis_registry():
    """Reset function APIs registry.

    This function is often used when the renderer is executed multiple times in
    the same python session. Such as pytest.
    """
    function_apis_registry.clear()
