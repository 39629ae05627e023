"""
Parallel quantification of multi-point (map) k-ratios.

Each point is quantified independently on a thread pool. Failures are
isolated to their point, counted, and stop the run once the error budget is
spent.
"""

import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from epmaquant.atomic.structures import Element
from epmaquant.core.abc import KRatioOptimizer
from epmaquant.core.constants import DEFAULT_MAX_ERRORS, DEFAULT_MAX_ITER, DEFAULT_OVERVOLTAGE
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.core.logging_config import get_logger
from epmaquant.correction.coating import NullCoating
from epmaquant.correction.reed import NullFluorescence
from epmaquant.correction.zaf import MultiZAF
from epmaquant.inversion.iteration import (
    CoatingTarget,
    Iteration,
    check_coating,
    is_coating,
    iterate,
)
from epmaquant.inversion.kratio import KRatios
from epmaquant.inversion.optimizer import SimpleKRatioOptimizer
from epmaquant.material.material import Material

logger = get_logger("inversion.batch")


class _Counter:
    """Thread-safe integer counter."""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> None:
        with self._lock:
            self._value += 1

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass
class MaterialMap:
    """
    Compositions of every point of a map.

    Attributes
    ----------
    name : str
        Map name
    elements : List[Element]
        Quantified elements
    materials : np.ndarray
        Object array of ``Material`` (None where a point failed or was skipped)
    n_errors : int
        Number of points that raised an error
    n_not_converged : int
        Number of points that completed without converging. Points that
        raised are counted in ``n_errors`` only.
    truncated : bool
        True if the error budget stopped the run early
    """

    name: str
    elements: List[Element]
    materials: np.ndarray
    n_errors: int = 0
    n_not_converged: int = 0
    truncated: bool = False

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.materials.shape

    def __getitem__(self, index) -> Optional[Material]:
        return self.materials[index]

    def mass_fraction(self, element: Element) -> np.ndarray:
        """Nominal mass fraction of ``element`` at each point (NaN where missing)."""
        res = np.full(self.shape, np.nan)
        for idx in np.ndindex(self.shape):
            mat = self.materials[idx]
            if mat is not None:
                res[idx] = mat.nominal(element)
        return res


def quantify_map(
    measured: Sequence[KRatios],
    iteration: Optional[Iteration] = None,
    kro: Optional[KRatioOptimizer] = None,
    max_iter: int = DEFAULT_MAX_ITER,
    coating: Optional[CoatingTarget] = None,
    name: str = "Map",
    max_errors: int = DEFAULT_MAX_ERRORS,
    n_workers: Optional[int] = None,
) -> MaterialMap:
    """
    Quantify every point of a set of same-shaped ``KRatios``.

    Parameters
    ----------
    measured : Sequence[KRatios]
        K-ratio maps, possibly with several per element
    iteration : Iteration, optional
        Configuration (defaults to XPP without fluorescence or coating corrections)
    kro : KRatioOptimizer, optional
        Reduces ``measured`` to one map per element
    max_iter : int
        Maximum number of steps per point
    coating : Tuple[CharXRay, Material], optional
        Coating line and material for coating co-estimation
    name : str
        Map name
    max_errors : int
        Points are skipped once this many errors have occurred
    n_workers : int, optional
        Number of worker threads. If None, uses CPU count.

    Returns
    -------
    MaterialMap
    """
    if not measured:
        raise InvalidInputError("At least one KRatios is required.")
    shape = measured[0].shape
    if any(krs.shape != shape for krs in measured[1:]):
        raise InvalidInputError("All the KRatios need to be the same dimensions.")
    check_coating(coating)
    iteration = iteration or Iteration(fc=NullFluorescence, cc=NullCoating)
    kro = kro or SimpleKRatioOptimizer(DEFAULT_OVERVOLTAGE)
    coating_material = coating[1] if coating is not None else None

    optimized = [krs.brightest() for krs in kro.optimize(list(measured))]
    # Standard corrections are shared by all the points
    std_zafs: List[Tuple[KRatios, MultiZAF]] = [
        (krs, iteration.correction(krs.standard, krs.lines, krs.std_props)) for krs in optimized
    ]
    n_errors, n_not_converged = _Counter(), _Counter()

    def quantify_point(idx: Tuple[int, ...]) -> Optional[Material]:
        if n_errors.value >= max_errors:
            return None
        try:
            return run_point(idx)
        except Exception as e:
            n_errors.increment()
            logger.error(f"Error quantifying {name}{list(idx)}: {e}")
            return None

    def run_point(idx: Tuple[int, ...]) -> Material:
        label = f"{name}{list(idx)}"
        pairs = [(krs[idx], zaf) for krs, zaf in std_zafs]
        kunk_zafs = [
            (kr, zaf)
            for kr, zaf in pairs
            if not (iteration.unmeasured.is_unmeasured(kr.element) or is_coating(kr, coating))
        ]
        kcoat = [kr for kr, _ in pairs if is_coating(kr, coating)]
        trace = iterate(
            label,
            [kr for kr, _ in kunk_zafs],
            kcoat,
            iteration,
            kunk_zafs,
            max_iter,
            None,
            coating_material,
        )
        if not trace.converged:
            n_not_converged.increment()
        return trace.comp

    if n_workers is None:
        n_workers = os.cpu_count() or 1
    indices = list(np.ndindex(shape))
    logger.info(f"Quantifying {len(indices)} points of {name} with {n_workers} workers")

    materials = np.empty(shape, dtype=object)
    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        futures = {executor.submit(quantify_point, idx): idx for idx in indices}
        for future in as_completed(futures):
            materials[futures[future]] = future.result()

    if n_not_converged.value > 0:
        logger.warning(f"{n_not_converged.value} matrix correction operations did not converge.")
    truncated = n_errors.value >= max_errors
    if truncated:
        logger.error(f"Exceeded {max_errors} errors - terminating early.")
    return MaterialMap(
        name,
        [krs.element for krs in optimized],
        materials,
        n_errors.value,
        n_not_converged.value,
        truncated,
    )
