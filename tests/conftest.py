"""
Pytest configuration and shared fixtures for epmaquant tests.

This module provides:
- Elements, standards and coatings used across the tests
- The albite (NaAlSi3O8) measurement set
- Stub correction algorithms for testing the iteration in isolation
"""

import tempfile
from pathlib import Path

import pytest
import numpy as np
import yaml

from epmaquant.atomic.structures import CharXRay, Element
from epmaquant.core.abc import MatrixCorrection
from epmaquant.core.constants import BEAM_ENERGY, COATING, TAKE_OFF_ANGLE
from epmaquant.core.units import convert_angle
from epmaquant.inversion.iteration import compute_kratios
from epmaquant.inversion.kratio import KRatio
from epmaquant.material.material import Material, carbon_coating

NA, O, AL, SI = Element(11), Element(8), Element(13), Element(14)


def conditions(e0_kev, toa_deg, coating_nm=None):
    props = {BEAM_ENERGY: e0_kev * 1000.0, TAKE_OFF_ANGLE: convert_angle(toa_deg, "deg", "rad")}
    if coating_nm is not None:
        props[COATING] = carbon_coating(coating_nm)
    return props


class ConstantCorrection(MatrixCorrection):
    """A phi(rho z) model that ignores the matrix: every integral is 1."""

    def phi(self, rho_z):
        return 1.0

    def phi_integral(self):
        return 1.0

    def absorbed_integral(self, chi):
        return 1.0

    def absorbed_integral_to(self, chi, tau):
        return min(1.0, tau)


@pytest.fixture
def si_line():
    return CharXRay(14, "K", "L3")


@pytest.fixture
def unk_props():
    """Unknown conditions: 19.5 keV, 41 degrees, 15 nm carbon."""
    return conditions(19.5, 41.0, 15.0)


@pytest.fixture
def std_props():
    """Standard conditions: 20 keV, 40 degrees, 10 nm carbon."""
    return conditions(20.0, 40.0, 10.0)


@pytest.fixture
def simple_standard():
    """A standard with round-number mass fractions."""
    return Material("Std", {SI: 0.5, O: 0.5})


@pytest.fixture
def albite():
    return Material.from_formula("NaAlSi3O8", density=2.62, name="Albite")


@pytest.fixture
def standards():
    return {
        "SiO2": Material.from_formula("SiO2", density=2.65),
        "NaF": Material.from_formula("NaF", density=2.56),
        "Al": Material.pure(AL),
    }


@pytest.fixture
def albite_templates(unk_props, std_props, standards):
    """K-ratio templates for albite against SiO2, NaF and Al (values unset)."""
    return [
        KRatio([CharXRay(8, "K", "L3")], unk_props, std_props, standards["SiO2"], 0.0),
        KRatio([CharXRay(11, "K", "L3"), CharXRay(11, "K", "L2")], unk_props, std_props, standards["NaF"], 0.0),
        KRatio([CharXRay(13, "K", "L3")], unk_props, std_props, standards["Al"], 0.0),
        KRatio([CharXRay(14, "K", "L3")], unk_props, std_props, standards["SiO2"], 0.0),
    ]


@pytest.fixture
def albite_kratios(albite, albite_templates):
    """Albite k-ratios computed with the default corrections."""
    return compute_kratios(albite, albite_templates)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def make_conditions():
    """Factory for measurement conditions from keV, degrees and nm of carbon."""
    return conditions


@pytest.fixture
def constant_correction():
    return ConstantCorrection


@pytest.fixture
def measurement_config_dict():
    """Albite measured at 15 keV against SiO2, NaF and Al."""
    return {
        "iteration": {
            "matrix_correction": "xpp",
            "fluorescence": "reed",
            "coating": "coating",
            "update_rule": "wegstein",
            "max_iter": 50,
            "convergence": {"type": "rms", "tolerance": 1.0e-5},
        },
        "sample": {"formula": "NaAlSi3O8", "density": 2.62, "name": "Albite"},
        "measurement": {
            "label": "Albite",
            "unknown": {"beam_energy_kev": 15.0, "take_off_angle_deg": 40.0, "coating_nm": 10.0},
            "standard": {"beam_energy_kev": 15.0, "take_off_angle_deg": 40.0, "coating_nm": 10.0},
            "kratios": [
                {"lines": ["O K-L3"], "standard": "SiO2", "kratio": 0.9},
                {"lines": ["Na K-L3", "Na K-L2"], "standard": "NaF", "kratio": 0.3},
                {"lines": "Al K-L3", "standard": {"formula": "Al", "name": "Pure Al"}, "kratio": 0.08},
                {"lines": ["Si K-L3"], "standard": "SiO2", "kratio": 0.65, "uncertainty": 0.005},
            ],
        },
    }


@pytest.fixture
def temp_config_file(measurement_config_dict):
    """The measurement configuration written to a temporary YAML file."""
    config_fd, config_path = tempfile.mkstemp(suffix=".yaml")
    with open(config_fd, "w") as f:
        yaml.dump(measurement_config_dict, f)
    yield config_path
    Path(config_path).unlink()
