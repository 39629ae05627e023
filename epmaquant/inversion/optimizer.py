"""
Selection of one k-ratio per element from redundant measurements.
"""

from typing import List, Sequence, TypeVar, Union

from epmaquant.atomic.structures import brightest
from epmaquant.core.abc import KRatioOptimizer
from epmaquant.core.constants import BEAM_ENERGY, DEFAULT_OVERVOLTAGE
from epmaquant.inversion.kratio import KRatio, KRatios, elements

K = TypeVar("K", KRatio, KRatios)


def shell_rank(family: str) -> int:
    """K -> 4, L -> 3, M -> 2, N -> 1."""
    return ord("O") - ord(family)


class SimpleKRatioOptimizer(KRatioOptimizer):
    """
    Prefers K lines first, adequate overvoltage next and brightness last.

    Parameters
    ----------
    overvoltage : float
        Target overvoltage; candidates measured below it are penalized
    """

    def __init__(self, overvoltage: float = DEFAULT_OVERVOLTAGE):
        self.overvoltage = overvoltage

    def score(self, kr: Union[KRatio, KRatios]) -> float:
        br = brightest(kr.lines)
        ov = min(kr.std_props[BEAM_ENERGY], kr.unk_props[BEAM_ENERGY]) / br.edge_energy
        return (
            shell_rank(br.family)
            - self.overvoltage / ov
            + 0.1 * sum(cxr.weight for cxr in kr.lines)
        )

    def optimize(self, kratios: Sequence[K]) -> List[K]:
        # max() keeps the first of equally scored candidates
        return [
            max((kr for kr in kratios if kr.element == elm), key=self.score)
            for elm in elements(kratios)
        ]

    def __repr__(self) -> str:
        return f"SimpleKRatioOptimizer(overvoltage={self.overvoltage})"
