"""
Inversion: from measured k-ratios to composition.
"""

from epmaquant.inversion.kratio import KRatio, KRatios, nonneg_k, elements
from epmaquant.inversion.optimizer import SimpleKRatioOptimizer
from epmaquant.inversion.update import NaiveUpdateRule, WegsteinUpdateRule
from epmaquant.inversion.convergence import RMSBelowTolerance, AllBelowTolerance, IsApproximate
from epmaquant.inversion.unmeasured import (
    NullUnmeasuredRule,
    ElementByDifference,
    ElementByFiat,
    OxygenByStoichiometry,
)
from epmaquant.inversion.iteration import (
    Iteration,
    IterationResult,
    compute_zafs,
    compute_kratios,
    quantify,
)
from epmaquant.inversion.batch import MaterialMap, quantify_map

__all__ = [
    "KRatio",
    "KRatios",
    "nonneg_k",
    "elements",
    "SimpleKRatioOptimizer",
    "NaiveUpdateRule",
    "WegsteinUpdateRule",
    "RMSBelowTolerance",
    "AllBelowTolerance",
    "IsApproximate",
    "NullUnmeasuredRule",
    "ElementByDifference",
    "ElementByFiat",
    "OxygenByStoichiometry",
    "Iteration",
    "IterationResult",
    "compute_zafs",
    "compute_kratios",
    "quantify",
    "MaterialMap",
    "quantify_map",
]
