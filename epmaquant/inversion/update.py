"""
Rules for updating the composition estimate between iteration steps.
"""

from typing import Dict, Optional, Sequence, Tuple

from epmaquant.atomic.structures import Element
from epmaquant.core.abc import UpdateRule
from epmaquant.core.constants import WEGSTEIN_MAX_SLOPE, WEGSTEIN_MIN_DENOMINATOR
from epmaquant.inversion.kratio import KRatio, nonneg_k
from epmaquant.material.material import Material

WegsteinState = Tuple[Material, Dict[Element, float]]


def _naive(measured: Sequence[KRatio], zafs: Dict[Element, float]) -> Dict[Element, float]:
    return {
        kr.element: nonneg_k(kr) * kr.standard_fraction / zafs[kr.element] for kr in measured
    }


class NaiveUpdateRule(UpdateRule):
    """
    The method of successive approximations: C(n+1) = k C_std / gZAFc(C(n)).
    """

    def update(
        self,
        prev_comp: Material,
        measured: Sequence[KRatio],
        zafs: Dict[Element, float],
        state: Optional[WegsteinState] = None,
    ) -> Tuple[Dict[Element, float], None]:
        return _naive(measured, zafs), None

    def __repr__(self) -> str:
        return "NaiveUpdateRule()"


class WegsteinUpdateRule(UpdateRule):
    """
    Wegstein acceleration as applied to EPMA by Reed and Mason (1967).

    With f(C) = C_std / gZAFc(C) the fixed point is C = k f(C). The slope of f
    is estimated from the previous two steps and a secant step is taken where
    it is well behaved; otherwise the naive estimate is kept for that element.
    The returned state is (previous composition, f) and must be handed back
    on the next call.
    """

    def __init__(
        self,
        max_slope: float = WEGSTEIN_MAX_SLOPE,
        min_denominator: float = WEGSTEIN_MIN_DENOMINATOR,
    ):
        self.max_slope = max_slope
        self.min_denominator = min_denominator

    def update(
        self,
        prev_comp: Material,
        measured: Sequence[KRatio],
        zafs: Dict[Element, float],
        state: Optional[WegsteinState] = None,
    ) -> Tuple[Dict[Element, float], WegsteinState]:
        cnp1 = _naive(measured, zafs)
        fn = {kr.element: kr.standard_fraction / zafs[kr.element] for kr in measured}
        if state is not None:
            cn = prev_comp
            cnm1, fnm1 = state
            for kr in measured:
                elm, km = kr.element, nonneg_k(kr)
                if km <= 0.0 or elm not in fnm1:
                    continue
                dc = cn.nominal(elm) - cnm1.nominal(elm)
                if dc == 0.0:
                    continue
                dfdc = (fn[elm] - fnm1[elm]) / dc
                den = 1.0 - km * dfdc
                if abs(dfdc) < self.max_slope and abs(den) > self.min_denominator:
                    cnp1[elm] = cn.nominal(elm) + (km * fn[elm] - cn.nominal(elm)) / den
        return cnp1, (prev_comp, fn)

    def __repr__(self) -> str:
        return "WegsteinUpdateRule()"
