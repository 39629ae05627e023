"""
Armstrong's CitZAF phi(rho z) matrix correction.

J. T. Armstrong, "Quantitative analysis of silicate and oxide materials:
comparison of Monte Carlo, ZAF and phi(rho z) procedures", Microbeam
Analysis (1988) pp. 239-246, with the surface ionization of Love, Cox and
Scott and the backscatter coefficient of Love and Scott.
"""

import numpy as np

from epmaquant.atomic.structures import AtomicSubShell
from epmaquant.core.abc import MatrixCorrection
from epmaquant.core.constants import EV_TO_KEV
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.correction.xpp import mean_ionization_potential
from epmaquant.material.material import Material


def surface_ionization(u0: float, eta: float) -> float:
    """Surface ionization phi(0) of Love, Cox and Scott."""
    a = 3.43378 + (-10.7872 + (10.97628 - 3.62286 / u0) / u0) / u0
    b = -0.59299 + (21.55329 + (-30.55248 + 9.59218 / u0) / u0) / u0
    return 1.0 + (eta / (1.0 + eta)) * (a + b * np.log(1.0 + eta))


def backscatter_coefficient(z: int, e0_kev: float) -> float:
    """Love and Scott backscatter coefficient of a pure element."""
    h1 = 1.0e-4 * (-52.3791 + z * (150.48371 + z * (-1.67373 + z * 0.00716)))
    h2 = 1.0e-4 * (-1112.8 + z * (30.289 - z * 0.15498))
    return h1 * (1.0 + h2 * np.log(e0_kev / 20.0))


class CitZAF(MatrixCorrection):
    """
    The CitZAF phi(rho z) model.

    phi(rho z) = gamma0 exp(-(alpha rho z)^2) (1 - q exp(-beta rho z))
    """

    def __init__(self, material: Material, shell: AtomicSubShell, e0: float):
        super().__init__(material, shell, e0)
        e0_kev = EV_TO_KEV * e0
        ec_kev = EV_TO_KEV * shell.edge_energy
        u0 = e0_kev / ec_kev
        j = mean_ionization_potential(material)
        if 1.166 * e0 / j <= 1.0:
            raise InvalidInputError(
                f"The beam energy must exceed the mean energy loss ({material.name}, {shell}, {e0} eV)."
            )
        fractions = {elm: material.nonneg(elm) for elm in material.mass_fractions}
        c_over_a = sum(c / elm.atomic_weight for elm, c in fractions.items())
        zbar = sum(c * elm.z / elm.atomic_weight for elm, c in fractions.items()) / c_over_a
        abar = sum(fractions.values()) / c_over_a
        eta = sum(c * backscatter_coefficient(elm.z, e0_kev) for elm, c in fractions.items())

        phi0 = surface_ionization(u0, eta)
        gamma0 = (
            5.0 * np.pi * u0 / ((u0 - 1.0) * np.log(u0)) * (np.log(u0) - 5.0 + 5.0 * u0 ** (-0.2))
        )
        self.phi0 = float(phi0)
        self.gamma0 = float(gamma0)
        self.q = float((gamma0 - phi0) / gamma0)
        self.alpha = float(
            2.97e5
            * (zbar**1.05 / (abar * e0_kev**1.25))
            * np.sqrt(np.log(1.166 * e0 / j) / (e0_kev - ec_kev))
        )
        self.beta = float(8.5e5 * zbar**2 / (abar * e0_kev**2 * (gamma0 - 1.0)))

    def phi(self, rho_z: float) -> float:
        return (
            self.gamma0
            * np.exp(-((self.alpha * rho_z) ** 2))
            * (1.0 - self.q * np.exp(-self.beta * rho_z))
        )

    def phi_integral(self) -> float:
        alpha, beta = self.alpha, self.beta
        return (alpha - self.q * alpha + beta) * self.gamma0 / (alpha * (alpha + beta))

    def absorbed_integral(self, chi: float) -> float:
        alpha, beta = self.alpha, self.beta
        return self.gamma0 * (1.0 / (alpha + chi) - self.q / (alpha + beta + chi))

    def absorbed_integral_to(self, chi: float, tau: float) -> float:
        alpha, beta, q, g0 = self.alpha, self.beta, self.q, self.gamma0
        return (1.0 - np.exp(-tau * (alpha + chi))) * g0 / (alpha + chi) + (
            np.exp(-tau * (alpha + beta + chi)) - 1.0
        ) * q * g0 / (alpha + beta + chi)

    def __repr__(self) -> str:
        return f"CitZAF[{self.shell} in {self.material.name} at {EV_TO_KEV * self.e0:.1f} keV]"
