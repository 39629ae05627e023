"""
Abstract base classes for extensibility.

The physics of the matrix correction (phi(rho z) models, fluorescence and
coating models) and the numerical policies of the iteration (update rules,
convergence tests, unmeasured-element rules, k-ratio optimizers) are all
interchangeable strategies. Each is selected once when an ``Iteration`` is
configured and passed through the call chain by reference.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple, Any, TYPE_CHECKING

import numpy as np

from epmaquant.core.constants import EV_TO_KEV
from epmaquant.core.exceptions import InvalidInputError

if TYPE_CHECKING:
    from epmaquant.atomic.structures import AtomicSubShell, CharXRay, Element
    from epmaquant.material.material import Material, Film
    from epmaquant.inversion.kratio import KRatio


class XRayDataSource(ABC):
    """
    Abstract interface for atomic and X-ray data.

    This allows plugging in different data sources without changing the
    correction algorithms. Energies are in eV.
    """

    @abstractmethod
    def atomic_weight(self, z: int) -> float:
        """Atomic weight in g/mol."""
        pass

    @abstractmethod
    def edge_energy(self, z: int, shell: str) -> float:
        """Ionization edge energy of a sub-shell in eV."""
        pass

    @abstractmethod
    def fluorescence_yield(self, z: int, shell: str) -> float:
        """Fluorescence yield of a sub-shell."""
        pass

    @abstractmethod
    def jump_ratio(self, z: int, shell: str) -> float:
        """Absorption edge jump ratio of a sub-shell."""
        pass

    @abstractmethod
    def line_energy(self, z: int, inner: str, outer: str) -> float:
        """Characteristic line energy in eV."""
        pass

    @abstractmethod
    def radiative_rate(self, z: int, inner: str, outer: str) -> float:
        """Fraction of radiative decays of the inner vacancy that emit this line."""
        pass

    @abstractmethod
    def mac(self, z: int, energy_ev: float) -> float:
        """Mass absorption coefficient in cm^2/g."""
        pass


# ============================================================================
# Correction Algorithm Contracts
# ============================================================================


class MatrixCorrection(ABC):
    """
    Abstract interface for phi(rho z) based matrix correction models.

    One instance describes the depth distribution of ionizations of one
    sub-shell in one material at one beam energy.
    """

    def __init__(self, material: "Material", shell: "AtomicSubShell", e0: float):
        self.material = material
        self.shell = shell
        self.e0 = e0
        if e0 <= shell.edge_energy:
            raise InvalidInputError(
                f"The beam energy ({e0:.0f} eV) must exceed the {shell} edge energy "
                f"({shell.edge_energy:.0f} eV)."
            )

    @classmethod
    def create(
        cls, material: "Material", shell: "AtomicSubShell", e0: float
    ) -> "MatrixCorrection":
        """Construct the correction for a material, sub-shell and beam energy (eV)."""
        return cls(material, shell, e0)

    @property
    def overvoltage(self) -> float:
        return self.e0 / self.shell.edge_energy

    @abstractmethod
    def phi(self, rho_z: float) -> float:
        """The phi(rho z) curve at mass depth rho_z (g/cm^2)."""
        pass

    @abstractmethod
    def phi_integral(self) -> float:
        """Integral of phi(rho z) over all depths."""
        pass

    @abstractmethod
    def absorbed_integral(self, chi: float) -> float:
        """Integral of phi(rho z) exp(-chi rho z) over all depths."""
        pass

    @abstractmethod
    def absorbed_integral_to(self, chi: float, tau: float) -> float:
        """Integral of phi(rho z) exp(-chi rho z) from the surface to mass depth tau."""
        pass

    def ionization_cross_section(self) -> float:
        """
        Relative ionization cross section at the beam energy.

        Q(U) = ln(U) / (U^m E_c^2) with E_c in keV and the exponent m from
        Pouchou & Pichoir. Only ratios for the same sub-shell are meaningful.
        """
        return relative_ionization_cross_section(self.shell, self.e0)


def ionization_exponent(shell: "AtomicSubShell") -> float:
    """Exponent m of the relative ionization cross section for a sub-shell."""
    if shell.n == 1:
        return 0.86 + 0.12 * np.exp(-((shell.z / 5.0) ** 2))
    elif shell.n == 2:
        return 0.82
    return 0.78


def relative_ionization_cross_section(shell: "AtomicSubShell", e0: float) -> float:
    """Relative ionization cross section of ``shell`` at beam energy ``e0`` (eV)."""
    e_c = EV_TO_KEV * shell.edge_energy
    u0 = e0 / shell.edge_energy
    if u0 <= 1.0:
        return 0.0
    return np.log(u0) / ((u0 ** ionization_exponent(shell)) * e_c**2)


class FluorescenceCorrection(ABC):
    """
    Abstract interface for secondary (characteristic) fluorescence models.
    """

    def __init__(self, material: "Material", shell: "AtomicSubShell", e0: float):
        self.material = material
        self.shell = shell
        self.e0 = e0

    @classmethod
    def create(
        cls, material: "Material", shell: "AtomicSubShell", e0: float
    ) -> "FluorescenceCorrection":
        """Construct the correction for a material, sub-shell and beam energy (eV)."""
        return cls(material, shell, e0)

    @abstractmethod
    def enhancement(self, cxr: "CharXRay", toa: float) -> float:
        """Ratio of total to primary emitted intensity (>= 1)."""
        pass


class CoatingCorrection(ABC):
    """
    Abstract interface for the absorption of X-rays in a surface coating.
    """

    def __init__(self, film: Optional["Film"] = None):
        self.film = film

    @classmethod
    def create(cls, film: Optional["Film"] = None) -> "CoatingCorrection":
        """Construct the correction for a film (or no film)."""
        return cls(film)

    @abstractmethod
    def transmission(self, cxr: "CharXRay", toa: float) -> float:
        """Fraction of emitted intensity transmitted through the coating."""
        pass


# ============================================================================
# Iteration Policy Contracts
# ============================================================================


class UpdateRule(ABC):
    """
    Abstract interface for proposing the next composition estimate.

    The rule's private state is returned by each call and handed back on the
    next call; ``None`` on the first step.
    """

    @abstractmethod
    def update(
        self,
        prev_comp: "Material",
        measured: Sequence["KRatio"],
        zafs: Dict["Element", float],
        state: Optional[Any] = None,
    ) -> Tuple[Dict["Element", float], Optional[Any]]:
        """Return (next mass fractions, next state)."""
        pass


class ConvergenceTest(ABC):
    """
    Abstract interface for deciding whether computed k-ratios match the measured.
    """

    @abstractmethod
    def converged(
        self, measured: Sequence["KRatio"], computed: Dict["Element", float]
    ) -> bool:
        """True if ``computed`` is close enough to ``measured``."""
        pass


class UnmeasuredElementRule(ABC):
    """
    Abstract interface for filling in elements that are not directly measured
    (by stoichiometry, by difference or by fiat).
    """

    @abstractmethod
    def compute(self, partial: Dict["Element", float]) -> Dict["Element", float]:
        """Return the full composition given the measured mass fractions."""
        pass

    def is_unmeasured(self, element: "Element") -> bool:
        """True if ``element`` is computed by this rule rather than measured."""
        return False


class KRatioOptimizer(ABC):
    """
    Abstract interface for reducing redundant k-ratios to one per element.
    """

    @abstractmethod
    def optimize(self, kratios: Sequence["KRatio"]) -> List["KRatio"]:
        """Return exactly one k-ratio per element present in ``kratios``."""
        pass
