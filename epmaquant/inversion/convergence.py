"""
Tests deciding when the computed k-ratios match the measured k-ratios.

All comparisons are strict: a difference exactly at the tolerance fails.
"""

from typing import Dict, Sequence

from epmaquant.atomic.structures import Element
from epmaquant.core.abc import ConvergenceTest
from epmaquant.core.constants import DEFAULT_TOLERANCE
from epmaquant.inversion.kratio import KRatio, nonneg_k


class RMSBelowTolerance(ConvergenceTest):
    """Sum of squared differences below tolerance squared."""

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE):
        self.tolerance = tolerance

    def converged(self, measured: Sequence[KRatio], computed: Dict[Element, float]) -> bool:
        ss = sum((nonneg_k(kr) - computed[kr.element]) ** 2 for kr in measured)
        return ss < self.tolerance**2

    def __repr__(self) -> str:
        return f"RMSBelowTolerance({self.tolerance})"


class AllBelowTolerance(ConvergenceTest):
    """Every absolute difference below tolerance."""

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE):
        self.tolerance = tolerance

    def converged(self, measured: Sequence[KRatio], computed: Dict[Element, float]) -> bool:
        return all(abs(nonneg_k(kr) - computed[kr.element]) < self.tolerance for kr in measured)

    def __repr__(self) -> str:
        return f"AllBelowTolerance({self.tolerance})"


class IsApproximate(ConvergenceTest):
    """Every k-ratio within a relative tolerance or an absolute tolerance."""

    def __init__(self, atol: float = DEFAULT_TOLERANCE, rtol: float = 1.0e-3):
        self.atol = atol
        self.rtol = rtol

    def _close(self, measured: float, computed: float) -> bool:
        if abs(measured - computed) < self.atol:
            return True
        return computed != 0.0 and abs(1.0 - measured / computed) < self.rtol

    def converged(self, measured: Sequence[KRatio], computed: Dict[Element, float]) -> bool:
        return all(self._close(nonneg_k(kr), computed[kr.element]) for kr in measured)

    def __repr__(self) -> str:
        return f"IsApproximate(atol={self.atol}, rtol={self.rtol})"
