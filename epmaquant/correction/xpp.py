"""
Pouchou & Pichoir's XPP phi(rho z) matrix correction.

Implements the model as described in "Electron Probe Quantitation", edited by
K.F.J. Heinrich and D.E. Newbury (Plenum, 1991). Internally the model works
in keV.
"""

from typing import Tuple

import numpy as np

from epmaquant.atomic.structures import AtomicSubShell
from epmaquant.core.abc import MatrixCorrection, ionization_exponent
from epmaquant.core.constants import EV_TO_KEV
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.material.material import Material


def mean_z_over_a(material: Material) -> float:
    """M = sum(C_i Z_i / A_i) (PAP p. 35)."""
    return sum(
        material.nonneg(elm) * elm.z / elm.atomic_weight for elm in material.mass_fractions
    )


def mean_ionization_potential(material: Material) -> float:
    """Mean ionization potential J of a material in eV (PAP eqn. 6)."""
    m = mean_z_over_a(material)
    log_j = sum(
        material.nonneg(elm) * (elm.z / elm.atomic_weight) * np.log(elm.mean_ionization_potential)
        for elm in material.mass_fractions
    )
    return float(np.exp(log_j / m))


def zbarb(material: Material) -> float:
    """Backscatter mean atomic number (PAP appendix 1)."""
    return sum(material.nonneg(elm) * np.sqrt(elm.z) for elm in material.mass_fractions) ** 2


def _dp(j_kev: float) -> Tuple[Tuple[float, float, float], Tuple[float, float, float]]:
    # PAP eqn. 8
    d = (6.6e-6, 1.12e-5 * (1.35 - 0.45 * j_kev**2), 2.2e-6 / j_kev)
    p = (0.78, 0.1, -0.5 + 0.25 * j_kev)
    return d, p


def electron_range(material: Material, e0: float) -> float:
    """
    Total trajectory length of an electron of energy ``e0`` (eV) in g/cm^2.
    """
    j = EV_TO_KEV * mean_ionization_potential(material)
    e_kev = EV_TO_KEV * e0
    d, p = _dp(j)
    return sum(
        j ** (1.0 - pk) * dk * e_kev ** (1.0 + pk) / (1.0 + pk) for dk, pk in zip(d, p)
    ) / mean_z_over_a(material)


def backscatter_factor(material: Material, u0: float) -> float:
    """Backscatter loss factor R as a function of overvoltage (PAP appendix 1)."""
    eta = _eta_bar(zbarb(material))
    return _r(eta, _w_bar(eta), u0)


def _eta_bar(zb: float) -> float:
    return 1.75e-3 * zb + 0.37 * (1.0 - np.exp(-0.015 * zb**1.3))


def _w_bar(eta: float) -> float:
    return 0.595 + eta / 3.7 + eta**4.55


def _r(eta: float, w: float, u0: float) -> float:
    q = (2.0 * w - 1.0) / (1.0 - w)
    ju0 = 1.0 + u0 * (np.log(u0) - 1.0)
    g = (u0 - 1.0 - (1.0 - 1.0 / u0 ** (1.0 + q)) / (1.0 + q)) / ((2.0 + q) * ju0)
    return 1.0 - eta * w * (1.0 - g)


class XPP(MatrixCorrection):
    """
    The XPP phi(rho z) model.

    The curve is phi(rho z) = A exp(-a rho z) + (B rho z + phi0 - A) exp(-b rho z)
    with parameters fixed by the surface ionization phi0, the integral F and the
    mean depth of ionization.
    """

    def __init__(self, material: Material, shell: AtomicSubShell, e0: float):
        super().__init__(material, shell, e0)
        e0_kev = EV_TO_KEV * e0
        m_v = mean_z_over_a(material)
        j_v = EV_TO_KEV * mean_ionization_potential(material)
        zb = zbarb(material)
        e_l = EV_TO_KEV * shell.edge_energy
        u0, v0 = e0_kev / e_l, e0_kev / j_v
        if v0 <= 1.0:
            raise InvalidInputError(
                f"The beam energy must exceed the mean energy loss ({material.name}, {shell}, {e0} eV)."
            )
        eta = _eta_bar(zb)
        d, p = _dp(j_v)
        m = ionization_exponent(shell)
        t = tuple(1.0 + pk - m for pk in p)

        # PAP eqn. 11 (1/S)
        inv_s = (
            u0
            / (v0 * m_v)
            * sum(
                dk * (v0 / u0) ** pk * (tk * u0**tk * np.log(u0) - u0**tk + 1.0) / tk**2
                for dk, pk, tk in zip(d, p, t)
            )
        )
        r = _r(eta, _w_bar(eta), u0)
        phi0 = 1.0 + 3.3 * (1.0 - 1.0 / u0 ** (2.0 - 2.3 * eta)) * eta**1.2
        qla = np.log(u0) / (u0**m * e_l**2)
        f = r * inv_s / qla

        x = 1.0 + 1.3 * np.log(zb)
        y = 0.2 + zb / 200.0
        f_over_rbar = 1.0 + x * np.log(1.0 + y * (1.0 - 1.0 / u0**0.42)) / np.log(1.0 + y)
        rbar = f / f_over_rbar if f_over_rbar >= phi0 else f / phi0

        b = np.sqrt(2.0) * (1.0 + np.sqrt(max(0.0, 1.0 - rbar * phi0 / f))) / rbar
        g = 0.22 * np.log(4.0 * zb) * (1.0 - 2.0 * np.exp(-zb * (u0 - 1.0) / 15.0))
        h = 1.0 - 10.0 * (1.0 - 1.0 / (1.0 + u0 / 10.0)) / zb**2
        big_p = min(g * h**4, 0.9 * b * rbar**2 * (b - 2.0 * phi0 / f)) * f / rbar**2

        a = (big_p + b * (2.0 * phi0 - b * f)) / (b * f * (2.0 - b * rbar) - phi0)
        eps = (a - b) / b
        if abs(eps) <= 1.0e-6:
            eps = 1.0e-6 if eps >= 0.0 else -1.0e-6
        big_b = (b**2 * f * (1.0 + eps) - big_p - phi0 * b * (2.0 + eps)) / eps

        self.phi0 = float(phi0)
        self.F = float(f)
        self.b = float(b)
        self.a = float(b * (1.0 + eps))
        self.B = float(big_b)
        self.A = float((big_b / b + phi0 - b * f) * (1.0 + eps) / eps)

    def phi(self, rho_z: float) -> float:
        return self.A * np.exp(-self.a * rho_z) + (self.B * rho_z + self.phi0 - self.A) * np.exp(
            -self.b * rho_z
        )

    def phi_integral(self) -> float:
        return self.F

    def absorbed_integral(self, chi: float) -> float:
        eps = (self.a - self.b) / self.b
        b = self.b
        return (
            self.phi0 + self.B / (b + chi) - self.A * b * eps / (b * (1.0 + eps) + chi)
        ) / (b + chi)

    def absorbed_integral_to(self, chi: float, tau: float) -> float:
        a, b, A, B = self.a, self.b, self.A, self.B
        ea = np.exp(-tau * (a + chi))
        eb = np.exp(-tau * (b + chi))
        return (
            A * (1.0 - ea) / (a + chi)
            + A * (eb - 1.0) / (b + chi)
            + (1.0 - eb) * self.phi0 / (b + chi)
            + B * (1.0 - eb - tau * (b + chi) * eb) / (b + chi) ** 2
        )

    def __repr__(self) -> str:
        return f"XPP[{self.shell} in {self.material.name} at {EV_TO_KEV * self.e0:.1f} keV]"
