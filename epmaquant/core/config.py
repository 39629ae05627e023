"""
Configuration management for epmaquant.

Provides utilities for loading and validating YAML/JSON configuration files
for the iteration procedure and the measurement (conditions and k-ratios).
"""

import json
from pathlib import Path
from typing import Dict, Any, Union
import logging

import yaml

logger = logging.getLogger(__name__)

MATRIX_CORRECTIONS = ["xpp", "citzaf"]
FLUORESCENCE_CORRECTIONS = ["reed", "null"]
COATING_CORRECTIONS = ["coating", "null"]
UPDATE_RULES = ["wegstein", "naive"]
CONVERGENCE_TESTS = ["rms", "all", "approximate"]
UNMEASURED_RULES = ["null", "difference", "fiat", "oxygen_by_stoichiometry"]


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters
    ----------
    config_path : str or Path
        Path to configuration file (.yaml, .yml, or .json)

    Returns
    -------
    dict
        Configuration dictionary

    Raises
    ------
    FileNotFoundError
        If config file does not exist
    ValueError
        If file format is not supported
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    suffix = config_path.suffix.lower()

    with open(config_path, "r") as f:
        if suffix in [".yaml", ".yml"]:
            config = yaml.safe_load(f)
        elif suffix == ".json":
            config = json.load(f)
        else:
            raise ValueError(
                f"Unsupported config file format: {suffix}. " "Use .yaml, .yml, or .json"
            )

    logger.info(f"Loaded configuration from {config_path}")
    return config


def _check_choice(section: Dict[str, Any], key: str, choices: list, name: str) -> None:
    if key in section and str(section[key]).lower() not in choices:
        raise ValueError(f"Invalid {name}: {section[key]}. Must be one of: {choices}")


def _check_positive(section: Dict[str, Any], key: str, name: str) -> None:
    if key in section and not (isinstance(section[key], (int, float)) and section[key] > 0):
        raise ValueError(f"{name} must be positive: {section[key]}")


def validate_iteration_config(config: Dict[str, Any]) -> bool:
    """
    Validate iteration configuration structure.

    All fields are optional; missing fields take the defaults (XPP, Reed,
    coating, Wegstein, RMS below 1e-5, 100 steps, no unmeasured elements).

    Parameters
    ----------
    config : dict
        Configuration dictionary

    Returns
    -------
    bool
        True if valid

    Raises
    ------
    ValueError
        If configuration is invalid
    """
    iteration = config.get("iteration", {}) or {}
    if not isinstance(iteration, dict):
        raise ValueError("'iteration' must be a dict")

    _check_choice(iteration, "matrix_correction", MATRIX_CORRECTIONS, "matrix correction")
    _check_choice(iteration, "fluorescence", FLUORESCENCE_CORRECTIONS, "fluorescence correction")
    _check_choice(iteration, "coating", COATING_CORRECTIONS, "coating correction")
    _check_choice(iteration, "update_rule", UPDATE_RULES, "update rule")

    if "max_iter" in iteration:
        max_iter = iteration["max_iter"]
        if not isinstance(max_iter, int) or isinstance(max_iter, bool) or max_iter < 1:
            raise ValueError(f"max_iter must be a positive integer: {max_iter}")

    if "convergence" in iteration:
        conv = iteration["convergence"]
        if not isinstance(conv, dict):
            raise ValueError("'convergence' must be a dict")
        _check_choice(conv, "type", CONVERGENCE_TESTS, "convergence test")
        if str(conv.get("type", "rms")).lower() == "approximate":
            for key in ("atol", "rtol"):
                _check_positive(conv, key, f"Convergence {key}")
        else:
            _check_positive(conv, "tolerance", "Convergence tolerance")

    if iteration.get("unmeasured") is not None:
        rule = iteration["unmeasured"]
        if not isinstance(rule, dict) or "type" not in rule:
            raise ValueError("'unmeasured' must be a dict with a 'type'")
        _check_choice(rule, "type", UNMEASURED_RULES, "unmeasured element rule")
        kind = str(rule["type"]).lower()
        if kind == "difference" and "element" not in rule:
            raise ValueError("Unmeasured rule 'difference' requires an 'element'")
        if kind == "fiat" and not isinstance(rule.get("composition"), dict):
            raise ValueError("Unmeasured rule 'fiat' requires a 'composition' dict")
        if "valences" in rule and not isinstance(rule["valences"], dict):
            raise ValueError("'valences' must be a dict")

    return True


def _validate_conditions(conditions: Any, name: str) -> None:
    if not isinstance(conditions, dict):
        raise ValueError(f"Measurement config missing '{name}' conditions")
    for field in ("beam_energy_kev", "take_off_angle_deg"):
        if field not in conditions:
            raise ValueError(f"'{name}' conditions missing required field: {field}")
    _check_positive(conditions, "beam_energy_kev", "Beam energy")
    _check_positive(conditions, "take_off_angle_deg", "Take-off angle")
    if conditions["take_off_angle_deg"] >= 90.0:
        raise ValueError(f"Take-off angle must be below 90 degrees: {conditions['take_off_angle_deg']}")
    if "coating_nm" in conditions and conditions["coating_nm"] is not None:
        if conditions["coating_nm"] < 0:
            raise ValueError("Coating thickness must be non-negative")


def validate_measurement_config(config: Dict[str, Any], require_kratios: bool = True) -> bool:
    """
    Validate measurement configuration structure.

    Parameters
    ----------
    config : dict
        Configuration dictionary
    require_kratios : bool
        If True, every k-ratio entry must carry a 'kratio' value (not needed
        when k-ratios are simulated)

    Returns
    -------
    bool
        True if valid

    Raises
    ------
    ValueError
        If configuration is invalid
    """
    if "measurement" not in config:
        raise ValueError("Configuration must contain 'measurement' section")

    meas = config["measurement"]
    _validate_conditions(meas.get("unknown"), "unknown")
    _validate_conditions(meas.get("standard"), "standard")

    kratios = meas.get("kratios")
    if not isinstance(kratios, list) or not kratios:
        raise ValueError("Measurement config requires a non-empty 'kratios' list")
    for i, entry in enumerate(kratios):
        if not isinstance(entry, dict):
            raise ValueError(f"k-ratio {i} must be a dict")
        lines = entry.get("lines")
        if not lines or not isinstance(lines, (list, str)):
            raise ValueError(f"k-ratio {i} missing 'lines'")
        if "standard" not in entry:
            raise ValueError(f"k-ratio {i} missing 'standard'")
        if require_kratios and "kratio" not in entry:
            raise ValueError(f"k-ratio {i} missing 'kratio'")
        if "uncertainty" in entry and entry["uncertainty"] < 0:
            raise ValueError(f"k-ratio {i} uncertainty must be non-negative")

    if meas.get("coating") is not None:
        coating = meas["coating"]
        for field in ("line", "formula", "density"):
            if field not in coating:
                raise ValueError(f"Coating config missing required field: {field}")
        _check_positive(coating, "density", "Coating density")

    return True


def save_config(config: Dict[str, Any], config_path: Union[str, Path]) -> None:
    """
    Save configuration to YAML or JSON file.

    Parameters
    ----------
    config : dict
        Configuration dictionary
    config_path : str or Path
        Path to output file; YAML is written unless the suffix is .json
    """
    config_path = Path(config_path)
    suffix = config_path.suffix.lower()
    if suffix not in [".yaml", ".yml", ".json"]:
        config_path = config_path.with_suffix(".yaml")
        suffix = ".yaml"

    with open(config_path, "w") as f:
        if suffix == ".json":
            json.dump(config, f, indent=2)
        else:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved configuration to {config_path}")
