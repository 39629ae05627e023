"""
Tests for the iterative quantification.
"""

import logging
import math

import pytest

from epmaquant.atomic.structures import Element, characteristic
from epmaquant.core.abc import ConvergenceTest
from epmaquant.core.constants import COATING
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.correction import CitZAF, NullCoating, NullFluorescence
from epmaquant.inversion.iteration import (
    Iteration,
    compute_kratios,
    compute_zafs,
    first_estimate,
    partition,
    quantify,
)
from epmaquant.inversion.kratio import KRatio
from epmaquant.inversion.unmeasured import OxygenByStoichiometry
from epmaquant.inversion.update import NaiveUpdateRule
from epmaquant.material.material import Film, Material
from epmaquant.validation.round_trip import simulate_kratios

O, SI, C = Element(8), Element(14), Element(6)


class NeverConverged(ConvergenceTest):
    def converged(self, measured, computed):
        return False


def assert_recovered(comp, truth, rel=2e-3):
    for elm in truth.elements:
        assert comp.nominal(elm) == pytest.approx(truth.nominal(elm), rel=rel)


def test_forward_model(albite_kratios):
    assert len(albite_kratios) == 4
    for kr in albite_kratios:
        assert 0.0 < kr.nominal_kratio < 1.0
        assert kr.uncertainty == 0.0


def test_albite_round_trip(albite, albite_kratios):
    result = quantify("Albite", albite_kratios)
    assert result.converged
    assert result.iterations < 20
    assert_recovered(result.comp, albite)
    assert result.summary().startswith("Converged to")
    assert str(result) == result.summary()


def test_citzaf_round_trip(albite, albite_templates):
    iteration = Iteration(mc=CitZAF)
    kratios = compute_kratios(albite, albite_templates, iteration)
    result = quantify("Albite", kratios, iteration)
    assert result.converged
    assert_recovered(result.comp, albite)


def test_naive_update_converges(albite, albite_kratios):
    result = quantify("Albite", albite_kratios, Iteration(updater=NaiveUpdateRule()))
    assert result.converged
    assert_recovered(result.comp, albite)


def test_best_scores_non_increasing(albite_kratios):
    result = quantify("Albite", albite_kratios, Iteration(convergence=NeverConverged()), max_iter=8)
    assert len(result.best_scores) == len(result.history) == 8
    assert all(b <= a for a, b in zip(result.best_scores, result.best_scores[1:]))
    assert result.best_scores[-1] == min(result.history)


def test_not_converged_warns(albite_kratios, caplog):
    iteration = Iteration(convergence=NeverConverged())
    with caplog.at_level(logging.WARNING, logger="epmaquant"):
        result = quantify("Albite", albite_kratios, iteration, max_iter=5)
    assert not result.converged
    assert "Albite did not converge in 5." in caplog.text
    assert f"Using best non-converged result from step {result.iterations}." in caplog.text
    assert result.summary().startswith("Failed to converge")
    assert all(isinstance(result.comp[elm], float) for elm in result.comp)


def test_converged_carries_uncertainty(albite, albite_templates):
    kratios = simulate_kratios(albite, albite_templates, noise=0.01)
    result = quantify("Albite", kratios)
    assert result.converged
    si = result.comp[SI]
    assert si.std_dev == pytest.approx(si.nominal_value * kratios[-1].fractional_uncertainty)


def test_est_comp_used(albite, albite_kratios):
    result = quantify("Albite", albite_kratios, est_comp=albite)
    assert result.converged
    assert result.iterations == 1


def test_oxygen_by_stoichiometry(albite, albite_kratios):
    iteration = Iteration(unmeasured=OxygenByStoichiometry())
    result = quantify("Albite", albite_kratios, iteration)
    assert result.converged
    assert O not in result.computed
    assert_recovered(result.comp, albite, rel=5e-3)


def test_partition_drops_unmeasured(albite_kratios):
    kunk, kcoat = partition(albite_kratios, Iteration(unmeasured=OxygenByStoichiometry()), None)
    assert [kr.element for kr in kunk] == [Element(11), Element(13), SI]
    assert kcoat == []


def test_first_estimate(albite_kratios):
    est = first_estimate(albite_kratios)
    assert est[SI] == pytest.approx(albite_kratios[-1].nominal_kratio * albite_kratios[-1].standard_fraction)


def test_zero_estimate_has_no_factors(albite_kratios):
    std_zafs = [(kr, Iteration().correction(kr.standard, kr.lines, kr.std_props)) for kr in albite_kratios]
    zafs = compute_zafs(Iteration(), Material("Zero", {SI: 0.0}), std_zafs)
    assert set(zafs) == {kr.element for kr in albite_kratios}
    assert all(math.isnan(zaf) for zaf in zafs.values())


def test_zero_kratios_not_converged(albite_templates, caplog):
    """A blank point returns its zero composition instead of raising."""
    with caplog.at_level(logging.WARNING, logger="epmaquant"):
        result = quantify("Blank", albite_templates)
    assert not result.converged
    assert result.iterations == 0
    assert all(result.comp.nominal(elm) == 0.0 for elm in result.comp)
    assert all(k == 0.0 for k in result.computed.values())
    assert "no positive mass fractions" in caplog.text
    assert "Failed to converge" in result.summary()


class TestCoating:
    @pytest.fixture
    def carbon(self):
        return Material("Carbon", {C: 1.0}, density=2.1)

    @pytest.fixture
    def c_line(self):
        return max(characteristic(C), key=lambda cxr: cxr.weight)

    @pytest.fixture
    def c_kratio(self, c_line, carbon, unk_props, std_props):
        return KRatio([c_line], unk_props, std_props, carbon, 0.01)

    def test_requires_density(self, albite_kratios, c_line):
        with pytest.raises(InvalidInputError):
            quantify("Albite", albite_kratios, coating=(c_line, Material("Carbon", {C: 1.0})))

    def test_coating_estimated(self, albite_kratios, c_kratio, c_line, carbon):
        original = [kr.unk_props[COATING] for kr in albite_kratios]
        result = quantify("Albite", albite_kratios + [c_kratio], coating=(c_line, carbon))
        assert isinstance(result.coating, Film)
        assert result.coating.thickness > 0.0
        assert C not in result.computed
        # The supplied k-ratios keep their own conditions
        assert [kr.unk_props[COATING] for kr in albite_kratios] == original
        assert all(
            kr.unk_props[COATING] is orig for kr, orig in zip(albite_kratios, original)
        )
        assert len(result.kratios) == 5


def test_null_corrections_leave_generation_only(albite, albite_templates):
    """With matrix effects removed k = C / C_std * Q_unk / Q_std."""
    iteration = Iteration(fc=NullFluorescence, cc=NullCoating)
    kratios = compute_kratios(albite, albite_templates, iteration)
    result = quantify("Albite", kratios, iteration)
    assert result.converged
    assert_recovered(result.comp, albite)
