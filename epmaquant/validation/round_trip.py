"""
Round-trip testing framework for quantification.

1. Compute k-ratios for a known composition with the forward model
2. Optionally add Gaussian noise to the k-ratios
3. Quantify the k-ratios
4. Verify the composition is recovered within tolerance
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
from uncertainties import ufloat

from epmaquant.atomic.structures import Element
from epmaquant.core.logging_config import get_logger
from epmaquant.inversion.iteration import Iteration, compute_kratios, quantify
from epmaquant.inversion.kratio import KRatio
from epmaquant.material.material import Material

logger = get_logger("validation.round_trip")


def simulate_kratios(
    material: Material,
    templates: Sequence[KRatio],
    iteration: Optional[Iteration] = None,
    noise: float = 0.0,
    seed: int = 42,
) -> List[KRatio]:
    """
    Synthetic k-ratios for a known composition.

    Parameters
    ----------
    material : Material
        True composition
    templates : Sequence[KRatio]
        Lines, conditions and standards to simulate
    iteration : Iteration, optional
        Correction algorithms used by the forward model
    noise : float
        Relative standard deviation of Gaussian noise; when positive the
        k-ratios carry it as their uncertainty
    seed : int
        Random seed for reproducibility

    Returns
    -------
    List[KRatio]
    """
    clean = compute_kratios(material, templates, iteration)
    if noise <= 0.0:
        return clean
    rng = np.random.default_rng(seed)
    noisy = []
    for kr in clean:
        k = kr.nominal_kratio
        value = k * (1.0 + rng.normal(0.0, noise))
        noisy.append(
            KRatio(kr.lines, kr.unk_props, kr.std_props, kr.standard, ufloat(value, abs(k) * noise))
        )
    return noisy


@dataclass
class RoundTripResult:
    """
    Result of a round-trip validation test.

    Attributes
    ----------
    true_composition : Dict[Element, float]
        Ground truth mass fractions
    recovered_composition : Dict[Element, float]
        Mass fractions from quantification
    composition_errors : Dict[Element, float]
        Fractional error per element
    converged : bool
        Whether the iteration converged
    iterations : int
        Number of steps used
    passed : bool
        Whether all tolerances were met
    tolerance : float
        Fractional tolerance used
    """

    true_composition: Dict[Element, float]
    recovered_composition: Dict[Element, float]
    composition_errors: Dict[Element, float]
    converged: bool
    iterations: int
    passed: bool
    tolerance: float = 0.0
    kratios: List[KRatio] = field(default_factory=list)

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        status = "PASSED" if self.passed else "FAILED"
        lines = [f"Round-Trip Validation: {status}", "  Composition:"]
        for elm, true_c in self.true_composition.items():
            rec_c = self.recovered_composition.get(elm, 0.0)
            err = self.composition_errors.get(elm, float("inf"))
            lines.append(f"    {elm}: {true_c:.4f} -> {rec_c:.4f} (error: {err*100:.2f}%)")
        lines.append(f"  Converged: {self.converged} ({self.iterations} iterations)")
        return "\n".join(lines)


class RoundTripValidator:
    """
    Validate quantification through round-trip testing.

    Parameters
    ----------
    iteration : Iteration, optional
        Configuration used for both the forward model and quantification
    tolerance : float
        Fractional tolerance for mass fractions (default: 0.01 = 1%)
    max_iter : int
        Iteration budget
    """

    def __init__(
        self,
        iteration: Optional[Iteration] = None,
        tolerance: float = 0.01,
        max_iter: int = 100,
    ):
        self.iteration = iteration or Iteration()
        self.tolerance = tolerance
        self.max_iter = max_iter

    def validate(
        self,
        material: Material,
        templates: Sequence[KRatio],
        noise: float = 0.0,
        seed: int = 42,
    ) -> RoundTripResult:
        """
        Run a complete round-trip validation.

        Parameters
        ----------
        material : Material
            True composition
        templates : Sequence[KRatio]
            Lines, conditions and standards to simulate
        noise : float
            Relative k-ratio noise
        seed : int
            Random seed

        Returns
        -------
        RoundTripResult
        """
        kratios = simulate_kratios(material, templates, self.iteration, noise, seed)
        result = quantify(material.name, kratios, self.iteration, self.max_iter)

        true_comp = {elm: material.nominal(elm) for elm in material.elements}
        recovered = {elm: result.comp.nominal(elm) for elm in result.comp.elements}
        errors = {
            elm: abs(recovered.get(elm, 0.0) - c) / c if c > 0.0 else abs(recovered.get(elm, 0.0))
            for elm, c in true_comp.items()
        }
        passed = result.converged and all(e <= self.tolerance for e in errors.values())
        logger.info(
            f"Round trip for {material.name}: {'passed' if passed else 'failed'} "
            f"in {result.iterations} steps"
        )
        return RoundTripResult(
            true_composition=true_comp,
            recovered_composition=recovered,
            composition_errors=errors,
            converged=result.converged,
            iterations=result.iterations,
            passed=passed,
            tolerance=self.tolerance,
            kratios=kratios,
        )
