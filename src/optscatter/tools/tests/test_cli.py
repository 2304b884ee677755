# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import os

from click.testing import CliRunner

import numpy as np
import pytest

from optscatter.options import ScalarType
from optscatter.tools.scatter_binding_generator import Config, cli


def test_generate_scattered_bindings(run_in_isolated_folder):
    res = run_in_isolated_folder(
        "scatter.yml.j2",
        "factories.py",
        {"prefix_removal": ["legacy_"]},
        load_symbols=True,
    )

    result = res["result"]
    assert "Generating bindings for 3 scattered functions, 1 passthrough functions." in result.output

    symbols = res["symbols"]
    assert set(symbols["__all__"]) == {
        "zeros",
        "arange",
        "debug_dump",
        "ones_like",
    }

    zeros = symbols["zeros"]
    out = zeros((2, 2), ScalarType.Long, None, None, None)
    assert out.dtype == np.int64
    assert out.shape == (2, 2)

    arange = symbols["arange"]
    np.testing.assert_array_equal(
        arange(6, "float64", None, None, None, 2), np.array([0.0, 2.0, 4.0])
    )
    assert arange(3, None, None, None, None).dtype == np.float32

    assert symbols["debug_dump"](None, None, "cuda:3", True) == (
        "TensorOptions(dtype=(unset), layout=(unset), device=cuda:3, "
        "pinned_memory=True)"
    )


def test_generate_header_and_passthrough(run_in_isolated_folder):
    res = run_in_isolated_folder(
        "scatter.yml.j2", "factories.py", {}, load_symbols=True
    )

    binding = res["binding"]
    assert binding.startswith(
        "# Automatically generated by Optscatter Scatter Binding Generator"
    )
    assert "# Optscatter version:" in binding
    assert "ones_like = _base.ones_like" in binding

    import factories

    assert res["symbols"]["ones_like"] is factories.ones_like


def test_generate_excludes_and_skip_prefix(run_in_isolated_folder):
    res = run_in_isolated_folder(
        "scatter.yml.j2",
        "factories.py",
        {"exclude": ["legacy_arange"], "skip_prefix": "debug_"},
        output_name="custom.py",
        load_symbols=True,
    )

    assert os.path.basename(res["binding_path"]) == "custom.py"
    assert set(res["symbols"]["__all__"]) == {"legacy_zeros", "ones_like"}

    output = res["result"].output
    assert (
        "Generating bindings for 1 scattered functions, 1 passthrough functions."
        in output
    )
    assert "legacy_arange" not in output
    assert "debug_dump" not in output


def test_generate_additional_imports(run_in_isolated_folder):
    res = run_in_isolated_folder(
        "scatter.yml.j2",
        "factories.py",
        {"additional_imports": ["numpy"]},
        load_symbols=True,
    )
    assert "import numpy\n" in res["binding"]


def test_generate_rejects_multiple_options(run_in_isolated_folder):
    res = run_in_isolated_folder("scatter.yml.j2", "bad_factories.py", {})

    result = res["result"]
    assert result.exit_code != 0
    assert "multiple TensorOptions parameters" in str(result.exception)
    assert res["binding"] is None


def test_check_command(tmp_path):
    here = os.path.dirname(os.path.abspath(__file__))
    good = os.path.join(here, "factories.py")
    bad = os.path.join(here, "bad_factories.py")

    runner = CliRunner()

    result = runner.invoke(cli, ["check", good])
    assert result.exit_code == 0, result.output
    assert "no violations" in result.output

    result = runner.invoke(cli, ["check", good, bad])
    assert result.exit_code == 1
    assert "bad_factories.py:7: legacy_copy:" in result.output


@pytest.mark.parametrize(
    "cfg, message",
    [
        ({"Module": "factories"}, "Entry Point"),
        ({"Entry Point": "factories.py"}, "Module"),
        (
            {"Entry Point": "does_not_exist.py", "Module": "factories"},
            "does not exist",
        ),
        ({"Entry Point": __file__, "Module": "not a module"}, "Invalid module"),
        (["Entry Point"], "mapping"),
    ],
)
def test_config_invalid_inputs(cfg, message):
    with pytest.raises(ValueError, match=message):
        Config(cfg)


def test_config_from_params():
    cfg = Config.from_params(
        __file__, "pkg.mod", api_prefix_removal=["legacy_"]
    )
    assert cfg.module == "pkg.mod"
    assert cfg.exclude_functions == []
    assert cfg.api_prefix_removal == ["legacy_"]
    assert cfg.output_name is None


def test_config_single_prefix_is_listified(tmp_path):
    cfg_file = tmp_path / "cfg.yml"
    cfg_file.write_text(
        f"Entry Point: {__file__}\nModule: factories\nAPI Prefix Removal: legacy_\n"
    )
    cfg = Config.from_yaml_path(str(cfg_file))
    assert cfg.api_prefix_removal == ["legacy_"]
