# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from optscatter import __version__ as optscatter_ver


class BaseRenderer:
    FutureImport = "from __future__ import annotations"
    """Generated modules keep annotations as text; they are never evaluated."""

    BaseModuleImport = "import {module} as {alias}"

    base_module_alias = "_base"
    """Name under which the generated module refers to the base module."""

    Imports: set[str] = set()
    """One element stands for one line of python import."""

    _function_symbols: list[str] = []
    """List of new function handles to expose."""

    _passthrough_symbols: list[str] = []
    """List of base functions re-exported unchanged."""

    def __init__(self, decl):
        self._decl = decl

    def render_as_str(self, *, with_imports: bool) -> str:
        raise NotImplementedError()


def clear_base_renderer_cache():
    """
    Clear all class-level caches and exposed-symbol lists on BaseRenderer.

    This resets shared renderer state by removing all entries from the following BaseRenderer attributes:
    `Imports`, `_function_symbols` and `_passthrough_symbols`.
    """
    BaseRenderer.Imports.clear()
    BaseRenderer._function_symbols.clear()
    BaseRenderer._passthrough_symbols.clear()


def get_reproducible_info(
    config_rel_path: str, cmd: str, sbg_params: dict[str, str]
) -> str:
    """
    Produce a reproducible information header composed of commented lines documenting the version, the generation command, generator parameters, and the config path.

    Parameters:
        config_rel_path (str): Path to the generator configuration file relative to the generated binding file.
        cmd (str): The command line used to invoke the generation.
        sbg_params (dict[str, str]): Generator parameters to record.

    Returns:
        str: A multi-line string where each line is prefixed with "# " and the block ends with a single trailing newline.
    """
    info = [
        f"Optscatter version: {optscatter_ver}",
        f"Generation command: {cmd}",
        f"Scatter binding generator parameters: {sbg_params}",
        f"Config file path (relative to the path of the generated binding): {config_rel_path}",
    ]

    commented = [f"# {x}" for x in info]

    return "\n".join(commented) + "\n"


def get_rendered_imports(additional_imports: list[str] = []) -> str:
    imports = "\n".join(sorted(BaseRenderer.Imports)) + "\n"
    for imprt in additional_imports:
        imports += f"import {imprt}\n"

    return imports


def _get_function_symbols() -> str:
    """
    Render a Python code block that defines the _FUNCTION_SYMBOLS list from BaseRenderer._function_symbols.

    Returns:
        code (str): A string containing a Python assignment that defines `_FUNCTION_SYMBOLS` as a list of symbol names quoted and comma-separated.
    """
    template = """
_FUNCTION_SYMBOLS = [{function_symbols}]
"""

    symbols = BaseRenderer._function_symbols
    quote_wrapped = [f'"{s}"' for s in symbols]
    concat = ",".join(quote_wrapped)
    code = template.format(function_symbols=concat)
    return code


def _get_passthrough_symbols() -> str:
    template = """
_PASSTHROUGH_SYMBOLS = [{passthrough_symbols}]
"""

    symbols = BaseRenderer._passthrough_symbols
    quote_wrapped = [f'"{s}"' for s in symbols]
    concat = ",".join(quote_wrapped)
    code = template.format(passthrough_symbols=concat)
    return code


def get_all_exposed_symbols() -> str:
    """
    Produce the code block that defines and exposes all symbol name lists and the module __all__.

    Returns:
        A string containing Python code that defines `_FUNCTION_SYMBOLS`, `_PASSTHROUGH_SYMBOLS`
        and an `__all__` list that is the concatenation of those symbol lists.
    """

    function_symbols = _get_function_symbols()
    passthrough_symbols = _get_passthrough_symbols()

    all_symbols = f"""
{function_symbols}
{passthrough_symbols}
__all__ = _FUNCTION_SYMBOLS + _PASSTHROUGH_SYMBOLS
"""

    return all_symbols
