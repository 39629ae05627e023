"""
Tests for configuration management module.
"""

import copy
import json
import tempfile
from pathlib import Path

import pytest

from epmaquant.core.config import (
    load_config,
    save_config,
    validate_iteration_config,
    validate_measurement_config,
)


def test_load_config_yaml(temp_config_file):
    """Test loading YAML configuration."""
    config = load_config(temp_config_file)
    assert "measurement" in config
    assert "iteration" in config
    assert config["measurement"]["unknown"]["beam_energy_kev"] == 15.0


def test_load_config_json(measurement_config_dict):
    """Test loading JSON configuration."""
    config_fd, config_path = tempfile.mkstemp(suffix=".json")

    try:
        with open(config_fd, "w") as f:
            json.dump(measurement_config_dict, f)

        config = load_config(config_path)
        assert config["measurement"]["kratios"][3]["uncertainty"] == 0.005
    finally:
        Path(config_path).unlink()


def test_load_config_not_found():
    """Test loading non-existent config file."""
    with pytest.raises(FileNotFoundError):
        load_config("nonexistent.yaml")


def test_load_config_invalid_format():
    """Test loading invalid file format."""
    config_fd, config_path = tempfile.mkstemp(suffix=".txt")

    try:
        with open(config_fd, "w") as f:
            f.write("not yaml or json")

        with pytest.raises(ValueError, match="Unsupported config file format"):
            load_config(config_path)
    finally:
        Path(config_path).unlink()


@pytest.mark.parametrize("suffix", [".yaml", ".json"])
def test_save_config(measurement_config_dict, tmp_path, suffix):
    """Test saving and reloading configuration."""
    path = tmp_path / f"config{suffix}"
    save_config(measurement_config_dict, path)
    assert load_config(path) == measurement_config_dict


def test_save_config_unknown_suffix(measurement_config_dict, tmp_path):
    """Unrecognized suffixes are written as YAML."""
    save_config(measurement_config_dict, tmp_path / "config.out")
    assert (tmp_path / "config.yaml").exists()


def test_validate_iteration_config(measurement_config_dict):
    assert validate_iteration_config(measurement_config_dict)
    assert validate_iteration_config({})


@pytest.mark.parametrize(
    "key, value",
    [
        ("matrix_correction", "pap"),
        ("fluorescence", "armstrong"),
        ("update_rule", "newton"),
        ("max_iter", 0),
        ("max_iter", 2.5),
        ("convergence", {"type": "rms", "tolerance": -1.0}),
        ("convergence", {"type": "never"}),
        ("unmeasured", {"type": "difference"}),
        ("unmeasured", {"type": "fiat", "composition": 0.5}),
        ("unmeasured", {"element": "O"}),
    ],
)
def test_validate_iteration_config_invalid(measurement_config_dict, key, value):
    config = copy.deepcopy(measurement_config_dict)
    config["iteration"][key] = value
    with pytest.raises(ValueError):
        validate_iteration_config(config)


def test_validate_unmeasured_rules(measurement_config_dict):
    for rule in (
        {"type": "oxygen_by_stoichiometry", "valences": {"Fe": 3}},
        {"type": "difference", "element": "O"},
        {"type": "fiat", "composition": {"Fe": 0.01}},
    ):
        config = copy.deepcopy(measurement_config_dict)
        config["iteration"]["unmeasured"] = rule
        assert validate_iteration_config(config)


def test_validate_measurement_config(measurement_config_dict):
    assert validate_measurement_config(measurement_config_dict)


def test_validate_measurement_missing_section():
    with pytest.raises(ValueError, match="measurement"):
        validate_measurement_config({})


@pytest.mark.parametrize(
    "side, field, value",
    [
        ("unknown", "beam_energy_kev", -15.0),
        ("standard", "take_off_angle_deg", 90.0),
        ("unknown", "coating_nm", -1.0),
    ],
)
def test_validate_measurement_bad_conditions(measurement_config_dict, side, field, value):
    measurement_config_dict["measurement"][side][field] = value
    with pytest.raises(ValueError):
        validate_measurement_config(measurement_config_dict)


def test_validate_measurement_missing_condition(measurement_config_dict):
    del measurement_config_dict["measurement"]["standard"]["beam_energy_kev"]
    with pytest.raises(ValueError, match="beam_energy_kev"):
        validate_measurement_config(measurement_config_dict)


def test_validate_measurement_kratio_entries(measurement_config_dict):
    meas = measurement_config_dict["measurement"]
    del meas["kratios"][0]["kratio"]
    with pytest.raises(ValueError, match="kratio"):
        validate_measurement_config(measurement_config_dict)
    # Simulation templates need no values
    assert validate_measurement_config(measurement_config_dict, require_kratios=False)

    meas["kratios"] = []
    with pytest.raises(ValueError):
        validate_measurement_config(measurement_config_dict, require_kratios=False)


def test_validate_measurement_coating(measurement_config_dict):
    meas = measurement_config_dict["measurement"]
    meas["coating"] = {"line": "C K-L2", "formula": "C", "density": 1.9}
    assert validate_measurement_config(measurement_config_dict)
    del meas["coating"]["density"]
    with pytest.raises(ValueError, match="density"):
        validate_measurement_config(measurement_config_dict)
