"""
Coating transmission and coating thickness estimation.
"""

from typing import TYPE_CHECKING, Optional, Type

import numpy as np
from scipy.optimize import brentq

from epmaquant.atomic.structures import CharXRay, brightest
from epmaquant.core.abc import CoatingCorrection, MatrixCorrection
from epmaquant.core.constants import BEAM_ENERGY, COATING, TAKE_OFF_ANGLE
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.core.logging_config import get_logger
from epmaquant.correction.xpp import XPP
from epmaquant.material.material import Film, Material

if TYPE_CHECKING:
    from epmaquant.inversion.kratio import KRatio

logger = get_logger("correction.coating")

# Doubling steps allowed while bracketing the coating mass thickness
_MAX_BRACKET_STEPS = 60
_INITIAL_MASS_THICKNESS = 1.0e-7  # g/cm^2


class Coating(CoatingCorrection):
    """Absorption of the emitted X-rays in a conductive coating film."""

    def transmission(self, cxr: CharXRay, toa: float) -> float:
        if self.film is None:
            return 1.0
        return self.film.transmission(cxr, toa)

    def __repr__(self) -> str:
        return f"Coating[{self.film}]"


class NullCoating(CoatingCorrection):
    """Ignores any coating."""

    def transmission(self, cxr: CharXRay, toa: float) -> float:
        return 1.0

    def __repr__(self) -> str:
        return "NullCoating"


def coating_as_film(
    mc: Type[MatrixCorrection],
    substrate: Material,
    coating: Material,
    kratio: "KRatio",
) -> Film:
    """
    Estimate the thickness of a coating from the k-ratio of a coating line.

    The intensity emitted by a film of mass thickness tau on the substrate is
    modelled with the substrate's phi(rho z) curve integrated from the surface
    to tau and absorbed by the film. The mass thickness is the root of
    ``I_film(tau) / I_std = k``.

    Parameters
    ----------
    mc : Type[MatrixCorrection]
        Matrix correction algorithm
    substrate : Material
        Current estimate of the substrate composition
    coating : Material
        Coating composition; must have a positive density
    kratio : KRatio
        Measured k-ratio of a coating element (assigned to its brightest line)

    Returns
    -------
    Film
        The coating film
    """
    if coating.density is None or coating.density <= 0.0:
        raise InvalidInputError(
            f"The coating material {coating.name} must have a positive density."
        )
    cxr = brightest(kratio.lines)
    elm = kratio.element
    shell = cxr.inner_shell
    k = max(0.0, kratio.nominal_kratio)
    c_film = coating.nonneg(elm)
    if k <= 0.0 or c_film <= 0.0:
        return Film(coating, 0.0)

    e0_u, toa_u = kratio.unk_props[BEAM_ENERGY], kratio.unk_props[TAKE_OFF_ANGLE]
    e0_s, toa_s = kratio.std_props[BEAM_ENERGY], kratio.std_props[TAKE_OFF_ANGLE]
    std = mc.create(kratio.standard, shell, e0_s)
    std_film: Optional[Film] = kratio.std_props.get(COATING)
    t_std = std_film.transmission(cxr, toa_s) if std_film is not None else 1.0
    i_std = (
        kratio.standard.nonneg(elm)
        * std.ionization_cross_section()
        * std.absorbed_integral(kratio.standard.mac(cxr) / np.sin(toa_s))
        * t_std
    )
    unk = mc.create(substrate.normalized(), shell, e0_u)
    chi = coating.mac(cxr) / np.sin(toa_u)
    scale = c_film * unk.ionization_cross_section()
    target = k * i_std

    def residual(tau: float) -> float:
        return scale * unk.absorbed_integral_to(chi, tau) - target

    hi = _INITIAL_MASS_THICKNESS
    for _ in range(_MAX_BRACKET_STEPS):
        if residual(hi) >= 0.0:
            break
        hi *= 2.0
    else:
        logger.warning(
            f"The {cxr} k-ratio ({k:.4g}) exceeds the emission of an infinitely thick "
            f"{coating.name} layer; clamping the coating thickness."
        )
        return Film(coating, hi / coating.density)
    tau = brentq(residual, 0.0, hi, xtol=1.0e-12)
    return Film(coating, tau / coating.density)


def estimate_coating(
    substrate: Material,
    coating: Material,
    kratio: "KRatio",
    mc: Optional[Type[MatrixCorrection]] = None,
) -> Film:
    """
    Estimate the coating film on ``substrate`` from a coating k-ratio.

    The coating is assumed to be the same for all measurements of the unknown.
    """
    return coating_as_film(mc or XPP, substrate, coating, kratio)
