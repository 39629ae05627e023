"""
Tests for materials and thin films.
"""

import numpy as np
import pytest
from uncertainties import ufloat

from epmaquant.atomic.structures import CharXRay, Element
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.material.material import Film, Material, carbon_coating

O, SI, FE = Element(8), Element(14), Element(26)


def test_from_formula():
    sio2 = Material.from_formula("SiO2", density=2.65)
    assert sio2.name == "SiO2"
    assert sio2.density == 2.65
    assert sio2.elements == [O, SI]
    assert sio2.total == pytest.approx(1.0)
    assert sio2[SI] == pytest.approx(0.4674, rel=1e-3)


def test_missing_element_reads_zero():
    mat = Material("Test", {SI: 0.5})
    assert mat[FE] == 0.0
    assert FE not in mat
    assert SI in mat
    assert len(mat) == 1


def test_keys_must_be_elements():
    with pytest.raises(InvalidInputError):
        Material("Bad", {"Si": 0.5})


def test_uncertain_fractions():
    mat = Material("Test", {SI: ufloat(0.4, 0.01), O: 0.5})
    assert mat.nominal(SI) == 0.4
    assert mat.total == pytest.approx(0.9)


def test_normalized():
    mat = Material("Test", {SI: 0.2, O: 0.6, FE: -0.1})
    norm = mat.normalized()
    assert norm.total == pytest.approx(1.0)
    assert norm[FE] == 0.0
    assert norm[O] == pytest.approx(0.75)
    # The original is unchanged
    assert mat[FE] == -0.1


def test_normalized_empty():
    mat = Material("Empty", {SI: 0.0})
    assert mat.normalized().total == 0.0


def test_atomic_fraction():
    sio2 = Material.from_formula("SiO2")
    assert sio2.atomic_fraction(SI) == pytest.approx(1.0 / 3.0, rel=1e-6)
    assert sio2.atomic_fraction(O) == pytest.approx(2.0 / 3.0, rel=1e-6)


def test_mean_z():
    mat = Material("Test", {SI: 0.5, O: 0.5})
    assert mat.mean_z == pytest.approx(11.0)


def test_mac_is_weighted_sum():
    cxr = CharXRay(14, "K", "L3")
    mix = Material("Mix", {SI: 0.25, FE: 0.75})
    expected = 0.25 * Material.pure(SI).mac(cxr) + 0.75 * Material.pure(FE).mac(cxr)
    assert mix.mac(cxr) == pytest.approx(expected)


def test_equality():
    a = Material("A", {SI: 0.5})
    assert a == Material("A", {SI: 0.5})
    assert a != Material("B", {SI: 0.5})


class TestFilm:
    def test_carbon_coating(self):
        film = carbon_coating(10.0)
        assert film.thickness == pytest.approx(1.0e-6)
        assert film.mass_thickness == pytest.approx(1.9e-6)
        assert "10.0 nm of Carbon" == repr(film)

    def test_transmission(self):
        cxr = CharXRay(14, "K", "L3")
        toa = np.deg2rad(40.0)
        thin, thick = carbon_coating(10.0), carbon_coating(100.0)
        assert 0.0 < thick.transmission(cxr, toa) < thin.transmission(cxr, toa) < 1.0
        assert carbon_coating(0.0).transmission(cxr, toa) == pytest.approx(1.0)

    def test_requires_density(self):
        with pytest.raises(InvalidInputError):
            Film(Material("C", {Element(6): 1.0}), 1.0e-6)

    def test_negative_thickness(self):
        with pytest.raises(InvalidInputError):
            carbon_coating(-1.0)
