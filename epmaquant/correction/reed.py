"""
Characteristic secondary fluorescence after Reed.

S.J.B. Reed, "Characteristic fluorescence correction in electron-probe
microanalysis", Br. J. Appl. Phys. 16 (1965) 913, as revised in Microbeam
Analysis (1990) p. 109.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from epmaquant.atomic.database import get_database
from epmaquant.atomic.structures import AtomicSubShell, CharXRay, characteristic
from epmaquant.core.abc import FluorescenceCorrection
from epmaquant.core.constants import EV_TO_KEV, REED_ENERGY_WINDOW, REED_MIN_WEIGHT
from epmaquant.core.logging_config import get_logger
from epmaquant.material.material import Material

logger = get_logger("correction.reed")


def lenard_coefficient(e0: float, shell: AtomicSubShell) -> float:
    """Lenard coefficient (Heinrich 1967) for beam energy ``e0`` in eV."""
    return 4.5e5 / ((EV_TO_KEV * e0) ** 1.65 - (EV_TO_KEV * shell.edge_energy) ** 1.65)


def ionization_depth_ratio(primary: AtomicSubShell, secondary: AtomicSubShell, e0: float) -> float:
    """Ratio of the mean ionization depths of the primary and secondary shells."""
    u_a, u_b = e0 / secondary.edge_energy, e0 / primary.edge_energy
    return (u_b * np.log(u_b) - u_b + 1.0) / (u_a * np.log(u_a) - u_a + 1.0)


def family_factor(secondary: AtomicSubShell, primary: AtomicSubShell) -> float:
    """Accounts for the differing ionization cross sections of K, L and M shells."""
    f_a, f_b = secondary.family, primary.family
    if f_a == f_b:
        return 1.0
    if f_a == "K" and f_b == "L":
        return 1.0 / 0.24
    if f_a == "L" and f_b == "K":
        return 0.24
    if f_a == "M" and f_b in ("K", "L"):
        return 0.02
    return 0.0


def ionization_fraction(shell: AtomicSubShell) -> float:
    """Fraction of absorbed photons that ionize ``shell``, from the jump ratio."""
    r = shell.jump_ratio
    return (r - 1.0) / r if r >= 1.0 else 0.0


@dataclass
class _Exciter:
    """Precomputed terms for one primary line exciting the secondary shell."""

    primary: CharXRay
    k: float
    lenard: float
    mu_b: float


def _exciter(
    material: Material, primary: CharXRay, secondary: AtomicSubShell, e0: float
) -> _Exciter:
    a_elm, b_elm = secondary.element, primary.element
    mu_b_a = get_database().mac(a_elm.z, primary.energy)
    mu_b = material.mac(primary)
    k = (
        family_factor(secondary, primary.inner_shell)
        * 0.5
        * material.nonneg(b_elm)
        * (mu_b_a / mu_b)
        * ionization_fraction(secondary)
        * primary.inner_shell.fluorescence_yield
        * (a_elm.atomic_weight / b_elm.atomic_weight)
        * ionization_depth_ratio(primary.inner_shell, secondary, e0)
    )
    return _Exciter(primary, k, lenard_coefficient(e0, secondary) / mu_b, mu_b)


class ReedFluorescence(FluorescenceCorrection):
    """
    Reed's characteristic fluorescence correction.

    Parameters
    ----------
    material : Material
        Sample composition
    shell : AtomicSubShell
        Secondary (fluoresced) sub-shell
    e0 : float
        Beam energy in eV
    primaries : Sequence[CharXRay], optional
        Exciting lines; selected automatically when omitted
    """

    def __init__(
        self,
        material: Material,
        shell: AtomicSubShell,
        e0: float,
        primaries: Optional[Sequence[CharXRay]] = None,
    ):
        super().__init__(material, shell, e0)
        if primaries is None:
            primaries = select_primaries(material, shell, e0)
        self.exciters: List[_Exciter] = []
        if shell.element in material:
            for primary in primaries:
                if primary.energy >= shell.edge_energy and primary.element in material:
                    self.exciters.append(_exciter(material, primary, shell, e0))
        logger.debug(f"{shell} in {material.name}: {len(self.exciters)} exciting line(s)")

    def enhancement(self, cxr: CharXRay, toa: float) -> float:
        if not self.exciters:
            return 1.0
        mac = self.material.mac(cxr)
        total = 0.0
        for ex in self.exciters:
            u = mac / (np.sin(toa) * ex.mu_b)
            total += (
                ex.primary.norm_weight
                * ex.k
                * (np.log(1.0 + u) / u + np.log(1.0 + ex.lenard) / ex.lenard)
            )
        return 1.0 + total

    def __repr__(self) -> str:
        primaries = [ex.primary for ex in self.exciters]
        return f"Reed[{self.shell} due to {primaries} in {self.material.name} at {EV_TO_KEV * self.e0:.1f} keV]"


def select_primaries(
    material: Material,
    shell: AtomicSubShell,
    e0: float,
    energy_window: float = REED_ENERGY_WINDOW,
    min_weight: float = REED_MIN_WEIGHT,
) -> List[CharXRay]:
    """
    Lines in ``material`` able to fluoresce ``shell``.

    A candidate must lie above the edge and within ``energy_window`` of it,
    must itself be excited by the beam, and must be bright enough that
    ``weight > min_weight / C`` for its element's mass fraction C.
    """
    edge = shell.edge_energy
    primaries = []
    for elm in material.mass_fractions:
        c = material.nonneg(elm)
        if c <= 0.0:
            continue
        for cxr in characteristic(elm, max_edge=e0):
            if edge < cxr.energy < edge + energy_window and cxr.weight > min_weight / c:
                primaries.append(cxr)
    return primaries


class NullFluorescence(FluorescenceCorrection):
    """No secondary fluorescence."""

    def enhancement(self, cxr: CharXRay, toa: float) -> float:
        return 1.0

    def __repr__(self) -> str:
        return "NullFluorescence"
