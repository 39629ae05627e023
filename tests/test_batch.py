"""
Tests for quantifying k-ratio maps.
"""

import numpy as np
import pytest

from epmaquant.atomic.structures import Element, brightest, characteristic
from epmaquant.core.constants import COATING
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.correction import NullCoating, NullFluorescence
from epmaquant.inversion.batch import MaterialMap, quantify_map
from epmaquant.inversion.iteration import Iteration, compute_kratios
from epmaquant.inversion.kratio import KRatios
from epmaquant.inversion.update import NaiveUpdateRule
from epmaquant.material.material import Material

SI, C = Element(14), Element(6)


def as_map(kratios, shape, scale=1.0):
    return [
        KRatios(kr.lines, kr.unk_props, kr.std_props, kr.standard, np.full(shape, scale * kr.nominal_kratio))
        for kr in kratios
    ]


@pytest.fixture
def constant_iteration(constant_correction):
    return Iteration(
        mc=constant_correction, fc=NullFluorescence, cc=NullCoating, updater=NaiveUpdateRule()
    )


def test_map_recovers_composition(albite, albite_templates):
    iteration = Iteration(fc=NullFluorescence, cc=NullCoating)
    kratios = compute_kratios(albite, albite_templates, iteration)
    result = quantify_map(as_map(kratios, (2, 2)), iteration, name="Albite", n_workers=2)
    assert isinstance(result, MaterialMap)
    assert result.shape == (2, 2)
    assert result.n_errors == 0
    assert result.n_not_converged == 0
    assert not result.truncated
    assert result.elements == [kr.element for kr in kratios]
    np.testing.assert_allclose(result.mass_fraction(SI), albite.nominal(SI), rtol=2e-3)


def test_constant_correction(albite_templates, constant_iteration):
    kratios = compute_kratios(albite_templates[0].standard, albite_templates[-1:], constant_iteration)
    result = quantify_map(as_map(kratios, (3,)), constant_iteration, n_workers=1)
    assert result.n_errors == 0
    for mat in result.materials:
        assert mat.nominal(SI) == pytest.approx(albite_templates[-1].standard_fraction)


@pytest.fixture
def failing_iteration(constant_correction):
    class FailingCorrection(constant_correction):
        """Fails for the unknown, which takes the map name."""

        @classmethod
        def create(cls, material, shell, e0):
            if material.name.startswith("Broken"):
                raise ValueError(f"No correction for {material.name}")
            return super().create(material, shell, e0)

    return Iteration(mc=FailingCorrection, fc=NullFluorescence, cc=NullCoating, updater=NaiveUpdateRule())


def test_blank_points_are_quantified(albite, albite_templates):
    """All-zero pixels give a zero composition and do not count as errors."""
    iteration = Iteration(fc=NullFluorescence, cc=NullCoating)
    kratios = compute_kratios(albite, albite_templates, iteration)
    mask = np.array([1.0, 0.0, 0.0, 0.0, 1.0, 0.0])
    maps = [
        KRatios(kr.lines, kr.unk_props, kr.std_props, kr.standard, mask * kr.nominal_kratio)
        for kr in kratios
    ]
    result = quantify_map(maps, iteration, max_errors=1, n_workers=1)
    assert result.n_errors == 0
    assert not result.truncated
    assert result.n_not_converged == 4
    assert all(mat is not None for mat in result.materials)
    si = result.mass_fraction(SI)
    np.testing.assert_allclose(si[mask > 0], albite.nominal(SI), rtol=2e-3)
    np.testing.assert_array_equal(si[mask == 0], 0.0)


def test_error_budget(albite_templates, constant_iteration, failing_iteration):
    """Points that raise are counted; the run stops after max_errors of them."""
    kratios = compute_kratios(albite_templates[0].standard, albite_templates[-1:], constant_iteration)
    result = quantify_map(
        as_map(kratios, (5,)), failing_iteration, name="Broken", max_errors=2, n_workers=1
    )
    assert result.n_errors == 2
    assert result.n_not_converged == 0
    assert result.truncated
    assert all(mat is None for mat in result.materials)
    assert np.isnan(result.mass_fraction(SI)).all()


def test_coating_estimated_per_point(albite, albite_templates, unk_props, std_props):
    """Each point estimates its own coating without touching the shared conditions."""
    carbon = Material("Carbon", {C: 1.0}, density=2.1)
    c_line = brightest(characteristic(C))
    iteration = Iteration(fc=NullFluorescence)
    maps = as_map(compute_kratios(albite, albite_templates, iteration), (2,))
    maps.append(
        KRatios([c_line], unk_props, std_props, carbon, np.array([0.01, 0.03]))
    )
    shared = [krs.unk_props[COATING] for krs in maps]
    result = quantify_map(maps, iteration, coating=(c_line, carbon), n_workers=2)
    assert result.n_errors == 0
    assert all(mat is not None for mat in result.materials)
    assert C not in result.materials[0]
    si = result.mass_fraction(SI)
    assert si[0] != pytest.approx(si[1], rel=1e-6)
    assert all(krs.unk_props[COATING] is orig for krs, orig in zip(maps, shared))


def test_empty_input():
    with pytest.raises(InvalidInputError):
        quantify_map([])


def test_mismatched_shapes(albite_kratios):
    maps = as_map(albite_kratios, (2, 2))
    maps[1] = as_map(albite_kratios[1:2], (3,))[0]
    with pytest.raises(InvalidInputError):
        quantify_map(maps)
