# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import click
import os
import sys
import subprocess
import importlib.util
import warnings

import yaml

from optscatter.static import reset_renderer
from optscatter.static.check import check_declarations
from optscatter.static.decl import FunctionDecl, parse_declarations_from_source
from optscatter.static.function import (
    StaticFunctionsRenderer,
    should_skip_function,
)
from optscatter.static.renderer import (
    get_all_exposed_symbols,
    get_rendered_imports,
    get_reproducible_info,
)


class Config:
    """Configuration File for Scatter Binding Generation.

    Attributes
    ----------
    entry_point : str
        Path to the input Python source file. Required.
    module : str
        Import path of the module that defines the base functions, as the
        generated binding will import it. Required.
    exclude_functions : list[str]
        List of function names to exclude from the bindings.
    skip_prefix : str | None
        Do not generate bindings for any functions that start with this prefix.
        Has no effect if left unspecified.
    api_prefix_removal : list[str]
        Prefixes to remove from exported function names. The first matching
        prefix is removed.
    output_name : str | None
        The name of the output binding file, default None. When set to None, use
        the name of the input file with a `_scattered.py` suffix.
    additional_imports : list[str]
        The list of additional imports to add to the binding file.
    """

    entry_point: str
    module: str
    exclude_functions: list[str]
    skip_prefix: str | None
    api_prefix_removal: list[str]
    output_name: str | None
    additional_imports: list[str]

    def __init__(self, config_dict: dict):
        """Initialize Config from a dictionary.

        Parameters
        ----------
        config_dict : dict
            Dictionary containing configuration values.
        """
        if not isinstance(config_dict, dict):
            raise ValueError(
                f"Configuration must be a mapping, got {type(config_dict).__name__}"
            )

        for required in ("Entry Point", "Module"):
            if not config_dict.get(required):
                raise ValueError(f"Missing required configuration: {required}")

        self.entry_point = config_dict["Entry Point"]
        self.module = config_dict["Module"]

        self.exclude_functions = config_dict.get("Exclude", [])
        if self.exclude_functions is None:
            self.exclude_functions = []

        self.skip_prefix = config_dict.get("Skip Prefix", None)

        self.api_prefix_removal = config_dict.get("API Prefix Removal", [])
        if self.api_prefix_removal is None:
            self.api_prefix_removal = []
        # Ensure prefix removal value is a list
        if not isinstance(self.api_prefix_removal, list):
            self.api_prefix_removal = [self.api_prefix_removal]

        self.output_name = config_dict.get("Output Name", None)

        self.additional_imports = config_dict.get("Additional Import", [])
        if self.additional_imports is None:
            self.additional_imports = []

        self._verify_exists()
        self._verify_module_name()

    @classmethod
    def from_yaml_path(cls, cfg_path: str) -> "Config":
        """Create a Config instance from a YAML file path.

        Parameters
        ----------
        cfg_path : str
            Path to the YAML configuration file.

        Returns
        -------
        Config
            A new Config instance.
        """
        with open(cfg_path) as f:
            config_dict = yaml.safe_load(f)
        return cls(config_dict)

    @classmethod
    def from_params(
        cls,
        entry_point: str,
        module: str,
        exclude_functions: list[str] | None = None,
        skip_prefix: str | None = None,
        api_prefix_removal: list[str] | None = None,
        output_name: str | None = None,
        additional_imports: list[str] | None = None,
    ) -> "Config":
        """Create a Config instance from individual parameters instead of a config file."""
        config_dict = {
            "Entry Point": entry_point,
            "Module": module,
            "Exclude": exclude_functions or [],
            "Skip Prefix": skip_prefix,
            "API Prefix Removal": api_prefix_removal or [],
            "Output Name": output_name,
            "Additional Import": additional_imports or [],
        }
        return cls(config_dict)

    def _verify_exists(self):
        if not os.path.exists(self.entry_point):
            raise ValueError(
                f"Input source file does not exist: {self.entry_point}"
            )

    def _verify_module_name(self):
        if not all(part.isidentifier() for part in self.module.split(".")):
            raise ValueError(f"Invalid module name: {self.module}")


def log_files_to_generate(functions: list[FunctionDecl]):
    """Console log the list of bindings to generate."""

    scattered = [f for f in functions if f.has_tensoroptions()]
    passthrough = [f for f in functions if not f.has_tensoroptions()]

    click.echo("-" * 80)
    click.echo(
        f"Generating bindings for {len(scattered)} scattered functions, "
        f"{len(passthrough)} passthrough functions."
    )
    click.echo("Scattered: ")
    click.echo("\n".join(f"  - {str(func)}" for func in scattered))
    click.echo("Passthrough: ")
    click.echo("\n".join(f"  - {str(func)}" for func in passthrough))


def _generate_functions(
    func_decls: list[FunctionDecl],
    module: str,
    excludes: list[str],
    function_prefix_removal: list[str],
    skip_prefix: str | None,
) -> str:
    """
    Render Python bindings for the provided function declarations.

    Parameters:
        func_decls (list[FunctionDecl]): Parsed function declarations to render.
        module (str): Import path of the module that defines the base functions.
        excludes (list[str]): Function names to exclude from rendering.
        function_prefix_removal (list[str]): List of prefixes to strip from function names when generating bindings.
        skip_prefix (str | None): If provided, skip generating bindings for functions whose names start with this prefix.

    Returns:
        binding_source (str): Generated source code for the functions section (imports are omitted).
    """
    SFR = StaticFunctionsRenderer(
        func_decls,
        module,
        excludes=excludes,
        skip_prefix=skip_prefix,
        function_prefix_removal=function_prefix_removal,
    )

    return SFR.render_as_str(with_imports=False)


def _scatter_binding_generator(
    config: Config,
    output_dir: str,
    log_generates: bool = False,
    cfg_file_path: str | None = None,
    sbg_params: dict[str, str] = {},
) -> str:
    """
    Generate scattered Python bindings for a Python source file using the provided configuration.

    Parameters:
        config (Config): Configuration containing entry point, module and rendering options.
        output_dir (str): Directory where the generated binding file will be written.
        log_generates (bool): If True, print counts and lists of declarations that will be generated.
        cfg_file_path (str | None): Path to the config file used to produce these bindings (used for reproducible metadata); may be None.
        sbg_params (dict[str, str]): Extra parameters to include in the generator metadata.

    Returns:
        str: Absolute path to the generated binding file.

    Raises:
        MultipleTensorOptionsError: If a rendered function takes more than one TensorOptions.
    """
    basename = os.path.splitext(os.path.basename(config.entry_point))[0]

    entry_point = os.path.abspath(config.entry_point)
    decls = parse_declarations_from_source(entry_point)
    functions = [
        f
        for f in decls.functions
        if not should_skip_function(
            f, config.exclude_functions, config.skip_prefix
        )
    ]

    if log_generates:
        log_files_to_generate(functions)

    function_bindings = _generate_functions(
        functions,
        config.module,
        config.exclude_functions,
        config.api_prefix_removal,
        config.skip_prefix,
    )

    imports_str = get_rendered_imports(
        additional_imports=config.additional_imports
    )

    if config.output_name is None:
        output_file = os.path.join(output_dir, f"{basename}_scattered.py")
    else:
        output_file = os.path.join(output_dir, config.output_name)

    # Full command line that generate the binding:
    cmd = " ".join(sys.argv)

    # Compute the relative path from generated binding to the config file:
    if cfg_file_path is not None:
        config_rel_path = os.path.relpath(cfg_file_path, output_file)
    else:
        config_rel_path = "<not available>"

    exposed_symbols = get_all_exposed_symbols()

    assembled = f"""# Automatically generated by Optscatter Scatter Binding Generator
# Generator Information:
{get_reproducible_info(config_rel_path, cmd, sbg_params)}
from __future__ import annotations

# Imports:
{imports_str}
# Functions:
{function_bindings}

# Symbols:
{exposed_symbols}
"""

    with open(output_file, "w") as file:
        file.write(assembled)
        click.echo(
            f"Bindings for {config.entry_point} generated in {output_file}"
        )

    return output_file


def ruff_format_binding_file(binding_file_path: str):
    if not os.path.exists(binding_file_path):
        return

    subprocess.run(
        ["ruff", "check", "--select", "I", "--fix", binding_file_path],
        check=True,
    )

    click.echo("Formatted.")


@click.group()
def cli():
    """Scatter TensorOptions parameters of legacy function signatures."""


@cli.command()
@click.pass_context
@click.option(
    "--cfg-path",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    required=True,
)
@click.option(
    "--output-dir",
    type=click.Path(
        exists=True,
        file_okay=False,
        writable=True,
    ),
    required=True,
)
@click.option(
    "-fmt",
    "--run-ruff-format",
    type=bool,
    default=True,
)
def generate(ctx, cfg_path, output_dir, run_ruff_format):
    """
    Generate a module of scattered bindings for a Python source file.

    CFG_PATH: Path to the configuration file in YAML format.
    OUTPUT_DIR: Path to the output directory where the binding file will be saved.
    RUN_RUFF_FORMAT: Run ruff import sorting on the generated binding file.
    """
    reset_renderer()

    cfg = Config.from_yaml_path(cfg_path)
    output_file = _scatter_binding_generator(
        cfg,
        output_dir,
        log_generates=True,
        cfg_file_path=cfg_path,
        sbg_params=ctx.params,
    )

    if run_ruff_format:
        spec = importlib.util.find_spec("ruff")
        if spec is None:
            warnings.warn("Ruff is not on the system. Formatting skipped.")
        else:
            ruff_format_binding_file(output_file)


@cli.command()
@click.argument(
    "sources",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True),
)
def check(sources):
    """
    Check that no function in SOURCES takes more than one TensorOptions.

    Exits with status 1 when a violation is found.
    """
    violations = []
    for source in sources:
        violations.extend(
            check_declarations(parse_declarations_from_source(source))
        )

    for violation in violations:
        click.echo(str(violation))

    if violations:
        raise click.exceptions.Exit(1)
    click.echo(f"Checked {len(sources)} file(s), no violations.")


if __name__ == "__main__":
    cli()
