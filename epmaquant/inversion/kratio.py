"""
Measured k-ratios.

A k-ratio is the ratio of the intensity measured on an unknown to the
intensity measured on a standard of known composition, for the same
characteristic line(s) of one element. Each measurement is described by a
dictionary of conditions: ``BeamEnergy`` (eV) and ``TakeOffAngle`` (radians)
are required, ``Coating`` (a Film) is optional and other entries are carried
along for bookkeeping.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from uncertainties import UFloat, nominal_value, std_dev, ufloat

from epmaquant.atomic.structures import CharXRay, Element, brightest
from epmaquant.core.constants import MIN_STANDARD_FRACTION, REQUIRED_CONDITIONS
from epmaquant.core.exceptions import InvalidInputError, InvalidStandardError
from epmaquant.material.material import Material

KRatioValue = Union[float, UFloat]


def _validate(
    lines: Sequence[CharXRay],
    unk_props: Dict[str, Any],
    std_props: Dict[str, Any],
    standard: Material,
) -> Element:
    if len(lines) < 1:
        raise InvalidInputError("Must specify at least one characteristic X-ray.")
    elm = lines[0].element
    if not all(cxr.element == elm for cxr in lines):
        raise InvalidInputError("The characteristic X-rays must all be from the same element.")
    for side, props in (("unknown", unk_props), ("standard", std_props)):
        missing = [key for key in REQUIRED_CONDITIONS if key not in props]
        if missing:
            raise InvalidInputError(f"The {side} conditions are missing {missing}")
    if standard.nominal(elm) <= MIN_STANDARD_FRACTION:
        raise InvalidStandardError(
            f"The standard {standard.name} must contain the element {elm}: {standard.nominal(elm)}"
        )
    return elm


class KRatio:
    """
    A single measured k-ratio.

    Everything but the unknown's ``Coating`` condition is fixed at construction.
    The coating is overwritten while a coating thickness is co-estimated, so
    ``quantify`` works on copies made with :meth:`copy`.

    Parameters
    ----------
    lines : Sequence[CharXRay]
        Measured lines, all from the same element
    unk_props : Dict[str, Any]
        Unknown measurement conditions
    std_props : Dict[str, Any]
        Standard measurement conditions
    standard : Material
        Standard composition; must contain more than 1e-4 of the element
    kratio : float or UFloat
        Measured k-ratio, optionally with an uncertainty

    Raises
    ------
    InvalidInputError
        If ``lines`` is empty, mixes elements or a required condition is missing
    InvalidStandardError
        If the standard lacks the element
    """

    def __init__(
        self,
        lines: Sequence[CharXRay],
        unk_props: Dict[str, Any],
        std_props: Dict[str, Any],
        standard: Material,
        kratio: KRatioValue,
    ):
        lines = list(lines)
        self._element = _validate(lines, unk_props, std_props, standard)
        self._lines: Tuple[CharXRay, ...] = tuple(lines)
        self.unk_props: Dict[str, Any] = unk_props
        self._std_props: Dict[str, Any] = dict(std_props)
        self._standard = standard
        self._kratio = kratio

    @property
    def element(self) -> Element:
        return self._element

    @property
    def lines(self) -> Tuple[CharXRay, ...]:
        return self._lines

    @property
    def std_props(self) -> Dict[str, Any]:
        return self._std_props

    @property
    def standard(self) -> Material:
        return self._standard

    @property
    def kratio(self) -> KRatioValue:
        return self._kratio

    @property
    def nominal_kratio(self) -> float:
        return float(nominal_value(self._kratio))

    @property
    def uncertainty(self) -> float:
        """One standard deviation uncertainty of the k-ratio (0 if unknown)."""
        return float(std_dev(self._kratio))

    @property
    def fractional_uncertainty(self) -> float:
        k = self.nominal_kratio
        return abs(self.uncertainty / k) if k != 0.0 else 0.0

    @property
    def standard_fraction(self) -> float:
        """Nominal mass fraction of the element in the standard."""
        return self._standard.nominal(self._element)

    def copy(self) -> "KRatio":
        """A copy with its own unknown-condition dictionary."""
        return KRatio(self._lines, dict(self.unk_props), self._std_props, self._standard, self._kratio)

    def __repr__(self) -> str:
        names = ", ".join(cxr.name for cxr in self._lines)
        return f"k[{self._standard.name}, {names}] = {self._kratio}"


def nonneg_k(kr: KRatio) -> float:
    """The nominal k-ratio clipped at zero."""
    return max(0.0, kr.nominal_kratio)


def elements(kratios: Iterable[Union[KRatio, "KRatios"]]) -> List[Element]:
    """The distinct elements in ``kratios`` in order of first appearance."""
    res: List[Element] = []
    for kr in kratios:
        if kr.element not in res:
            res.append(kr.element)
    return res


class KRatios:
    """
    K-ratios for the same lines measured at many points (a map or line scan).

    The metadata are shared; the values live in a numpy array and an optional
    array of one standard deviation uncertainties of the same shape.

    Parameters
    ----------
    lines : Sequence[CharXRay]
        Measured lines, all from the same element
    unk_props : Dict[str, Any]
        Unknown measurement conditions (shared by all points)
    std_props : Dict[str, Any]
        Standard measurement conditions
    standard : Material
        Standard composition
    kratios : np.ndarray
        K-ratio value per point
    uncertainties : np.ndarray, optional
        K-ratio uncertainty per point
    """

    def __init__(
        self,
        lines: Sequence[CharXRay],
        unk_props: Dict[str, Any],
        std_props: Dict[str, Any],
        standard: Material,
        kratios: np.ndarray,
        uncertainties: Optional[np.ndarray] = None,
    ):
        lines = list(lines)
        self.element = _validate(lines, unk_props, std_props, standard)
        self.lines: Tuple[CharXRay, ...] = tuple(lines)
        self.unk_props = dict(unk_props)
        self.std_props = dict(std_props)
        self.standard = standard
        self.kratios = np.asarray(kratios, dtype=float)
        if uncertainties is not None:
            uncertainties = np.asarray(uncertainties, dtype=float)
            if uncertainties.shape != self.kratios.shape:
                raise InvalidInputError(
                    f"Uncertainty shape {uncertainties.shape} does not match k-ratio shape {self.kratios.shape}"
                )
        self.uncertainties = uncertainties

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.kratios.shape

    def __getitem__(self, index) -> KRatio:
        """The k-ratio at one point, with a point-local copy of the conditions."""
        value = float(self.kratios[index])
        if self.uncertainties is not None:
            value = ufloat(value, float(self.uncertainties[index]))
        return KRatio(self.lines, dict(self.unk_props), self.std_props, self.standard, value)

    def brightest(self) -> "KRatios":
        """The same k-ratios attributed to the brightest line only."""
        return KRatios(
            [brightest(self.lines)],
            self.unk_props,
            self.std_props,
            self.standard,
            self.kratios,
            self.uncertainties,
        )

    def __repr__(self) -> str:
        names = ", ".join(cxr.name for cxr in self.lines)
        return f"k[{self.standard.name}, {names}] with shape {self.shape}"
