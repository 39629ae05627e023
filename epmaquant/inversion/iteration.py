"""
Iterative conversion of measured k-ratios into a composition.

The composition C of the unknown satisfies, for each measured element,

    k = (C / C_std) * gZAFc(C)

which is solved as a fixed point problem. The standard-side corrections are
computed once; each step recomputes the unknown-side corrections for the
current estimate, compares the computed and measured k-ratios, and proposes
a new estimate through an ``UpdateRule``.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from uncertainties import ufloat

from epmaquant.atomic.structures import CharXRay, Element
from epmaquant.core.abc import (
    CoatingCorrection,
    ConvergenceTest,
    FluorescenceCorrection,
    MatrixCorrection,
    UnmeasuredElementRule,
    UpdateRule,
)
from epmaquant.core.constants import (
    BEAM_ENERGY,
    COATING,
    DEFAULT_MAX_ITER,
    DEFAULT_TOLERANCE,
    LARGE,
    TAKE_OFF_ANGLE,
)
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.core.logging_config import get_logger
from epmaquant.correction.coating import Coating, estimate_coating
from epmaquant.correction.reed import ReedFluorescence
from epmaquant.correction.xpp import XPP
from epmaquant.correction.zaf import MultiZAF, build_correction, combined_factor
from epmaquant.inversion.convergence import RMSBelowTolerance
from epmaquant.inversion.kratio import KRatio, nonneg_k
from epmaquant.inversion.unmeasured import NullUnmeasuredRule
from epmaquant.inversion.update import WegsteinUpdateRule
from epmaquant.material.material import Film, Material

logger = get_logger("inversion.iteration")

CoatingTarget = Tuple[CharXRay, Material]
StdCorrections = List[Tuple[KRatio, MultiZAF]]


@dataclass(frozen=True)
class Iteration:
    """
    Configuration of the iteration: correction algorithms and numerical policies.

    Attributes
    ----------
    mc : Type[MatrixCorrection]
        phi(rho z) matrix correction algorithm
    fc : Type[FluorescenceCorrection]
        Secondary fluorescence algorithm
    cc : Type[CoatingCorrection]
        Coating correction algorithm
    updater : UpdateRule
        Proposes the next composition estimate
    convergence : ConvergenceTest
        Decides when computed and measured k-ratios agree
    unmeasured : UnmeasuredElementRule
        Fills in elements that are not measured
    """

    mc: Type[MatrixCorrection] = XPP
    fc: Type[FluorescenceCorrection] = ReedFluorescence
    cc: Type[CoatingCorrection] = Coating
    updater: UpdateRule = field(default_factory=WegsteinUpdateRule)
    convergence: ConvergenceTest = field(
        default_factory=lambda: RMSBelowTolerance(DEFAULT_TOLERANCE)
    )
    unmeasured: UnmeasuredElementRule = field(default_factory=NullUnmeasuredRule)

    def correction(
        self, material: Material, lines: Sequence[CharXRay], props: Dict[str, Any]
    ) -> MultiZAF:
        """The combined correction for ``lines`` in ``material`` under ``props``."""
        return build_correction(
            self.mc, self.fc, self.cc, material, lines, props[BEAM_ENERGY], props.get(COATING)
        )

    def __repr__(self) -> str:
        return (
            f"Iteration[{self.mc.__name__}, {self.fc.__name__}, {self.cc.__name__}, "
            f"{self.updater}, {self.convergence}, {self.unmeasured}]"
        )


@dataclass
class IterationResult:
    """
    Result of quantifying one set of k-ratios.

    Attributes
    ----------
    label : str
        Identifies the source of the k-ratios
    comp : Material
        Best composition estimate
    kratios : List[KRatio]
        The measured k-ratios as supplied
    computed : Dict[Element, float]
        K-ratios computed from ``comp``
    converged : bool
        Whether the convergence test was satisfied
    iterations : int
        Step that produced ``comp``
    iteration : Iteration
        Configuration used
    history : List[float]
        Sum of squared k-ratio differences at each step
    best_scores : List[float]
        Best score seen up to each step (non-increasing)
    coating : Film, optional
        Estimated coating, when a coating thickness was co-estimated
    """

    label: str
    comp: Material
    kratios: List[KRatio]
    computed: Dict[Element, float]
    converged: bool
    iterations: int
    iteration: Iteration
    history: List[float] = field(default_factory=list)
    best_scores: List[float] = field(default_factory=list)
    coating: Optional[Film] = None

    @property
    def material(self) -> Material:
        return self.comp

    def summary(self) -> str:
        if self.converged:
            return f"Converged to {self.comp} in {self.iterations} steps."
        return f"Failed to converge in {self.iterations} iterations: Best estimate = {self.comp}."

    def __str__(self) -> str:
        return self.summary()


@dataclass
class _Trace:
    """Internal record of one run of the iteration loop."""

    comp: Material
    computed: Dict[Element, float]
    converged: bool
    step: int
    history: List[float] = field(default_factory=list)
    best_scores: List[float] = field(default_factory=list)
    coating: Optional[Film] = None


def is_coating(kr: KRatio, coating: Optional[CoatingTarget]) -> bool:
    """True if ``kr`` measures the coating rather than the sample."""
    if coating is None:
        return False
    cxr, material = coating
    return cxr in kr.lines and kr.element in material


def partition(
    measured: Sequence[KRatio], iteration: Iteration, coating: Optional[CoatingTarget]
) -> Tuple[List[KRatio], List[KRatio]]:
    """
    Split ``measured`` into k-ratios of measured sample elements and coating k-ratios.

    K-ratios for elements computed by the unmeasured-element rule are dropped.
    """
    kunk = [
        kr
        for kr in measured
        if not (iteration.unmeasured.is_unmeasured(kr.element) or is_coating(kr, coating))
    ]
    kcoat = [kr for kr in measured if is_coating(kr, coating)]
    return kunk, kcoat


def first_estimate(kunk: Sequence[KRatio]) -> Dict[Element, float]:
    """C = k C_std"""
    return {kr.element: nonneg_k(kr) * kr.standard_fraction for kr in kunk}


def compute_zafs(
    iteration: Iteration, estimate: Material, std_zafs: StdCorrections
) -> Dict[Element, float]:
    """
    The combined gZAFc of each measured element for a composition estimate.

    Parameters
    ----------
    iteration : Iteration
        Configuration
    estimate : Material
        Current composition estimate (normalized before use)
    std_zafs : List[Tuple[KRatio, MultiZAF]]
        Each measured k-ratio paired with its standard-side correction

    Returns
    -------
    Dict[Element, float]
        gZAFc per element (NaN when the estimate has no positive mass fraction)
    """
    if estimate.total <= 0.0:
        return {kr.element: math.nan for kr, _ in std_zafs}
    mat = estimate.normalized()
    return {
        kr.element: combined_factor(
            iteration.correction(mat, kr.lines, kr.unk_props),
            std_zaf,
            kr.unk_props[TAKE_OFF_ANGLE],
            kr.std_props[TAKE_OFF_ANGLE],
        )
        for kr, std_zaf in std_zafs
    }


def computed_kratios(
    comp: Material, zafs: Dict[Element, float], std_comps: Dict[Element, float]
) -> Dict[Element, float]:
    """k = C gZAFc / C_std"""
    return {elm: comp.nominal(elm) * zaf / std_comps[elm] for elm, zaf in zafs.items()}


def compute_kratios(
    material: Material, templates: Sequence[KRatio], iteration: Optional[Iteration] = None
) -> List[KRatio]:
    """
    Forward-compute the k-ratios ``material`` would produce.

    Parameters
    ----------
    material : Material
        Assumed composition of the unknown
    templates : Sequence[KRatio]
        Lines, conditions and standards to simulate; their values are ignored
    iteration : Iteration, optional
        Correction algorithms (defaults to XPP, Reed and Coating)

    Returns
    -------
    List[KRatio]
        One k-ratio per template
    """
    iteration = iteration or Iteration()
    mat = material.normalized(material.total)
    res = []
    for tmpl in templates:
        std_zaf = iteration.correction(tmpl.standard, tmpl.lines, tmpl.std_props)
        unk_zaf = iteration.correction(mat, tmpl.lines, tmpl.unk_props)
        k = (
            mat.nominal(tmpl.element)
            * combined_factor(
                unk_zaf, std_zaf, tmpl.unk_props[TAKE_OFF_ANGLE], tmpl.std_props[TAKE_OFF_ANGLE]
            )
            / tmpl.standard_fraction
        )
        res.append(KRatio(tmpl.lines, dict(tmpl.unk_props), tmpl.std_props, tmpl.standard, k))
    return res


def _final(comp: Material, kunk: Sequence[KRatio]) -> Material:
    # Propagate the fractional k-ratio uncertainty onto the mass fraction
    final: Dict[Element, Any] = {elm: comp.nominal(elm) for elm in comp}
    for kr in kunk:
        c = final.get(kr.element, 0.0)
        if c > 0.0 and kr.nominal_kratio > 0.0:
            final[kr.element] = ufloat(c, c * kr.fractional_uncertainty)
        else:
            final[kr.element] = ufloat(0.0, kr.uncertainty)
    return Material(comp.name, final, comp.density)


def iterate(
    label: str,
    kunk: List[KRatio],
    kcoat: List[KRatio],
    iteration: Iteration,
    std_zafs: StdCorrections,
    max_iter: int = DEFAULT_MAX_ITER,
    estimate: Optional[Material] = None,
    coating: Optional[Material] = None,
) -> _Trace:
    """
    Run the fixed point loop on prepared k-ratios.

    ``kunk`` must be point-local: their ``Coating`` condition is overwritten
    when ``kcoat`` is non-empty.
    """
    std_comps = {kr.element: kr.standard_fraction for kr in kunk}
    if estimate is None:
        estimate = Material(label, iteration.unmeasured.compute(first_estimate(kunk)))
    if estimate.total <= 0.0:
        # Blank point: nothing to correct, reported as not converged
        logger.warning(f"{label}: no positive mass fractions to iterate on.")
        return _Trace(estimate, {kr.element: 0.0 for kr in kunk}, False, 0)
    zafs = compute_zafs(iteration, estimate, std_zafs)
    trace = _Trace(estimate, computed_kratios(estimate, zafs, std_comps), False, 0)
    best, state = LARGE, None
    for step in range(1, max_iter + 1):
        if kcoat and coating is not None:
            film = estimate_coating(estimate, coating, kcoat[0], iteration.mc)
            # Only the latest coating estimate is retained
            for kr in kunk:
                kr.unk_props[COATING] = film
            trace.coating = film
            zafs = compute_zafs(iteration, estimate, std_zafs)
        computed = computed_kratios(estimate, zafs, std_comps)
        score = sum((nonneg_k(kr) - computed[kr.element]) ** 2 for kr in kunk)
        trace.history.append(score)
        logger.debug(f"{label}: step {step} score {score:.3e}")
        if score < best:
            best = score
            trace.comp, trace.computed, trace.step = estimate, computed, step
            if iteration.convergence.converged(kunk, computed):
                trace.best_scores.append(best)
                trace.converged = True
                return trace
        trace.best_scores.append(best)
        upd, state = iteration.updater.update(estimate, kunk, zafs, state)
        estimate = Material(label, iteration.unmeasured.compute(upd))
        if estimate.total <= 0.0:
            break
        zafs = compute_zafs(iteration, estimate, std_zafs)
    return trace


def check_coating(coating: Optional[CoatingTarget]) -> None:
    if coating is None:
        return
    material = coating[1]
    if material.density is None or material.density <= 0.0:
        raise InvalidInputError(
            f"You must provide a positive density for the coating material {material.name}."
        )


def quantify(
    label: str,
    measured: Sequence[KRatio],
    iteration: Optional[Iteration] = None,
    max_iter: int = DEFAULT_MAX_ITER,
    est_comp: Optional[Material] = None,
    coating: Optional[CoatingTarget] = None,
) -> IterationResult:
    """
    Iterate from measured k-ratios to the best estimate of the composition.

    Parameters
    ----------
    label : str
        Identifies the source of the k-ratios
    measured : Sequence[KRatio]
        Measured k-ratios; may include several per element as long as each
        element's are consistent, and k-ratios of unmeasured or coating elements
    iteration : Iteration, optional
        Configuration (defaults to XPP, Reed, Coating, Wegstein and an RMS test)
    max_iter : int
        Maximum number of steps
    est_comp : Material, optional
        First estimate of the composition
    coating : Tuple[CharXRay, Material], optional
        A line not produced by the sample paired with the coating material,
        used to co-estimate the coating thickness

    Returns
    -------
    IterationResult
        Converged result, or the best result seen when ``max_iter`` is exhausted

    Raises
    ------
    InvalidInputError
        If the coating material lacks a positive density
    """
    iteration = iteration or Iteration()
    check_coating(coating)
    label = str(label)
    kunk, kcoat = partition(measured, iteration, coating)
    # The coating condition is rewritten during the iteration
    kunk = [kr.copy() for kr in kunk]
    std_zafs = [
        (kr, iteration.correction(kr.standard, kr.lines, kr.std_props)) for kr in kunk
    ]
    estimate = None
    if est_comp is not None:
        estimate = Material(label, {elm: est_comp.nominal(elm) for elm in est_comp})
    trace = iterate(
        label,
        kunk,
        kcoat,
        iteration,
        std_zafs,
        max_iter,
        estimate,
        coating[1] if coating is not None else None,
    )
    if trace.converged:
        logger.info(f"{label} converged in {trace.step} steps.")
        comp = _final(trace.comp, kunk)
    else:
        logger.warning(f"{label} did not converge in {max_iter}.")
        logger.warning(f"Using best non-converged result from step {trace.step}.")
        comp = trace.comp
    return IterationResult(
        label,
        comp,
        list(measured),
        trace.computed,
        trace.converged,
        trace.step,
        iteration,
        trace.history,
        trace.best_scores,
        trace.coating,
    )
