"""
Tests for the convergence criteria.
"""

import pytest

from epmaquant.atomic.structures import Element
from epmaquant.inversion.convergence import AllBelowTolerance, IsApproximate, RMSBelowTolerance
from epmaquant.inversion.kratio import KRatio

SI = Element(14)


@pytest.fixture
def measured(si_line, unk_props, std_props, simple_standard):
    return [KRatio([si_line], unk_props, std_props, simple_standard, 0.5)]


@pytest.mark.parametrize("test_cls", [RMSBelowTolerance, AllBelowTolerance])
def test_tolerance_is_strict(measured, test_cls):
    assert not test_cls(0.25).converged(measured, {SI: 0.25})
    assert test_cls(0.5).converged(measured, {SI: 0.25})


def test_rms_sums_over_elements(albite_templates):
    computed = {kr.element: 0.003 for kr in albite_templates}
    # Four differences of 0.003: RMS sum 0.006
    assert not RMSBelowTolerance(0.005).converged(albite_templates, computed)
    assert AllBelowTolerance(0.005).converged(albite_templates, computed)


class TestIsApproximate:
    def test_relative(self, measured):
        test = IsApproximate(atol=1.0e-6, rtol=1.0e-3)
        assert test.converged(measured, {SI: 0.5004})
        assert not test.converged(measured, {SI: 0.51})

    def test_absolute(self, measured):
        assert IsApproximate(atol=0.02, rtol=0.0).converged(measured, {SI: 0.51})

    def test_zero_computed(self, si_line, unk_props, std_props, simple_standard, measured):
        test = IsApproximate(atol=1.0e-6)
        assert not test.converged(measured, {SI: 0.0})
        zero = [KRatio([si_line], unk_props, std_props, simple_standard, 0.0)]
        assert test.converged(zero, {SI: 0.0})
