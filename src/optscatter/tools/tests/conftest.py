# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import os
import shutil
import sys
import warnings

import pytest

from jinja2 import Environment, FileSystemLoader

from click.testing import CliRunner

from optscatter.tools.scatter_binding_generator import cli


@pytest.fixture
def run_in_isolated_folder(tmpdir, monkeypatch):
    # Helper to simulate a production environment where configurations are used
    # Tmp Folder structure:
    # - /
    # - config/
    #   - <config_name>.yml
    # - output/
    #   - <source_name>.py
    #   - <source_name>_scattered.py
    #
    # Test folder structure:
    # - .
    # - config
    #   - <template_a>.yml.j2
    # - <source_a>.py
    # - test_a.py
    imported = []

    def _run(
        cfg_template,
        source,
        params,
        output_name=None,
        load_symbols=False,
        show_binding=False,
    ):
        root = tmpdir
        config_folder = root.mkdir("config")
        output_folder = root.mkdir("output")
        here = os.path.dirname(os.path.abspath(__file__))

        src_data = os.path.join(here, source)
        target_data = os.path.join(output_folder, source)
        config_name = cfg_template.replace(".j2", "")
        config_path = os.path.join(config_folder, config_name)
        shutil.copy(src_data, target_data)

        module_name = os.path.splitext(source)[0]
        params["data"] = target_data
        params["module"] = module_name
        if output_name is not None:
            params["output_name"] = output_name

        env = Environment(loader=FileSystemLoader(here))
        template = env.get_template("config/" + cfg_template)
        config = template.render(params)

        with open(config_path, "w") as f:
            f.write(config)

        runner = CliRunner()

        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            result = runner.invoke(
                cli,
                [
                    "generate",
                    "--cfg-path",
                    config_path,
                    "--output-dir",
                    str(output_folder),
                    "-fmt",
                    "false",
                ],
            )

        if output_name is None:
            output_name = module_name + "_scattered.py"
        binding_path = os.path.join(output_folder, output_name)

        binding = None
        if os.path.exists(binding_path):
            with open(binding_path) as f:
                binding = f.read()

        symbols = {}
        if load_symbols:
            assert result.exit_code == 0, result.output
            monkeypatch.syspath_prepend(str(output_folder))
            sys.modules.pop(module_name, None)
            imported.append(module_name)
            exec(binding, symbols)

        if show_binding:
            print(binding)

        return {
            "result": result,
            "output_folder": output_folder,
            "binding_path": binding_path,
            "binding": binding,
            "symbols": symbols,
            "warnings": w,
        }

    yield _run

    for module_name in imported:
        sys.modules.pop(module_name, None)
