"""
Rules for elements whose mass fractions are computed rather than measured.
"""

from typing import Dict, Mapping, Optional

from epmaquant.atomic.structures import Element
from epmaquant.core.abc import UnmeasuredElementRule
from epmaquant.core.exceptions import InvalidInputError

OXYGEN = Element(8)

# Common oxidation states keyed by atomic number
DEFAULT_VALENCES: Dict[int, float] = {
    1: 1, 3: 1, 4: 2, 5: 3, 6: 4, 7: 5, 11: 1, 12: 2, 13: 3, 14: 4, 15: 5, 16: 6,
    19: 1, 20: 2, 21: 3, 22: 4, 23: 5, 24: 3, 25: 2, 26: 2, 27: 2, 28: 2, 29: 2,
    30: 2, 31: 3, 32: 4, 33: 5, 37: 1, 38: 2, 39: 3, 40: 4, 41: 5, 42: 6, 47: 1,
    48: 2, 49: 3, 50: 4, 51: 3, 55: 1, 56: 2, 57: 3, 58: 4, 59: 3, 60: 3, 62: 3,
    63: 3, 64: 3, 66: 3, 72: 4, 73: 5, 74: 6, 82: 2, 83: 3, 90: 4, 92: 6,
}


class NullUnmeasuredRule(UnmeasuredElementRule):
    """Every element is measured."""

    def compute(self, partial: Dict[Element, float]) -> Dict[Element, float]:
        return dict(partial)

    def __repr__(self) -> str:
        return "NullUnmeasuredRule()"


class ElementByDifference(UnmeasuredElementRule):
    """The named element makes up the difference from unity."""

    def __init__(self, element: Element):
        self.element = element

    def is_unmeasured(self, element: Element) -> bool:
        return element == self.element

    def compute(self, partial: Dict[Element, float]) -> Dict[Element, float]:
        res = {elm: c for elm, c in partial.items() if elm != self.element}
        res[self.element] = max(0.0, 1.0 - sum(res.values()))
        return res

    def __repr__(self) -> str:
        return f"ElementByDifference({self.element})"


class ElementByFiat(UnmeasuredElementRule):
    """
    Fixed mass fractions for one or more elements.

    Parameters
    ----------
    fractions : Mapping[Element, float]
        Mass fraction assigned to each element
    """

    def __init__(self, fractions: Mapping[Element, float]):
        if not fractions:
            raise InvalidInputError("ElementByFiat requires at least one element.")
        self.fractions = dict(fractions)

    def is_unmeasured(self, element: Element) -> bool:
        return element in self.fractions

    def compute(self, partial: Dict[Element, float]) -> Dict[Element, float]:
        res = dict(partial)
        res.update(self.fractions)
        return res

    def __repr__(self) -> str:
        return f"ElementByFiat({self.fractions})"


class OxygenByStoichiometry(UnmeasuredElementRule):
    """
    Oxygen computed from the cations assuming fixed oxidation states.

    C_O = A_O * sum(C_i / A_i * v_i / 2)

    Parameters
    ----------
    valences : Mapping[Element, float], optional
        Oxidation state per element, overriding the defaults
    """

    def __init__(self, valences: Optional[Mapping[Element, float]] = None):
        self.valences: Dict[Element, float] = {Element(z): v for z, v in DEFAULT_VALENCES.items()}
        if valences:
            self.valences.update(valences)

    def is_unmeasured(self, element: Element) -> bool:
        return element == OXYGEN

    def compute(self, partial: Dict[Element, float]) -> Dict[Element, float]:
        res = {elm: c for elm, c in partial.items() if elm != OXYGEN}
        moles = sum(
            max(0.0, c) / elm.atomic_weight * self.valences.get(elm, 0.0) / 2.0
            for elm, c in res.items()
        )
        res[OXYGEN] = OXYGEN.atomic_weight * moles
        return res

    def __repr__(self) -> str:
        return "OxygenByStoichiometry()"
