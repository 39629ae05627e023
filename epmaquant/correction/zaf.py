"""
Combination of the matrix, fluorescence and coating corrections.

The emitted intensity of a line per unit mass fraction is modelled as

    I = Q(U) * Fchi * F_fl * T

with Q the relative ionization cross section, Fchi the absorbed phi(rho z)
integral, F_fl the fluorescence enhancement and T the coating transmission.
The k-ratio of an unknown against a standard is then

    k = (C_unk / C_std) * g * Z * A * F * c

where each factor is the ratio of the corresponding unknown and standard
terms.
"""

from typing import Dict, List, Optional, Sequence, Type

import numpy as np

from epmaquant.atomic.structures import AtomicSubShell, CharXRay, brightest
from epmaquant.core.abc import CoatingCorrection, FluorescenceCorrection, MatrixCorrection
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.material.material import Film, Material


class ZAFCorrection:
    """
    Matrix, fluorescence and coating corrections for one sub-shell.

    Attributes
    ----------
    za : MatrixCorrection
        phi(rho z) model (atomic number and absorption)
    f : FluorescenceCorrection
        Secondary fluorescence model
    coating : CoatingCorrection
        Coating transmission model
    """

    def __init__(self, za: MatrixCorrection, f: FluorescenceCorrection, coating: CoatingCorrection):
        self.za = za
        self.f = f
        self.coating = coating

    @property
    def material(self) -> Material:
        return self.za.material

    @property
    def shell(self) -> AtomicSubShell:
        return self.za.shell

    @property
    def e0(self) -> float:
        return self.za.e0

    def chi(self, cxr: CharXRay, toa: float) -> float:
        """Mass absorption coefficient over sin(take-off angle)."""
        return self.material.mac(cxr) / np.sin(toa)

    def intensity(self, cxr: CharXRay, toa: float) -> float:
        """Emitted intensity per unit mass fraction (arbitrary units)."""
        return (
            self.za.ionization_cross_section()
            * self.za.absorbed_integral(self.chi(cxr, toa))
            * self.f.enhancement(cxr, toa)
            * self.coating.transmission(cxr, toa)
        )

    def z_factor(self, std: "ZAFCorrection") -> float:
        """Atomic number correction."""
        return self.za.phi_integral() / std.za.phi_integral()

    def a_factor(self, std: "ZAFCorrection", cxr: CharXRay, toa: float, std_toa: float) -> float:
        """Absorption correction."""
        unk_a = self.za.absorbed_integral(self.chi(cxr, toa)) / self.za.phi_integral()
        std_a = std.za.absorbed_integral(std.chi(cxr, std_toa)) / std.za.phi_integral()
        return unk_a / std_a

    def f_factor(self, std: "ZAFCorrection", cxr: CharXRay, toa: float, std_toa: float) -> float:
        """Fluorescence correction."""
        return self.f.enhancement(cxr, toa) / std.f.enhancement(cxr, std_toa)

    def generation(self, std: "ZAFCorrection") -> float:
        """Ratio of ionization cross sections (differing beam energies)."""
        return self.za.ionization_cross_section() / std.za.ionization_cross_section()

    def coating_factor(self, std: "ZAFCorrection", cxr: CharXRay, toa: float, std_toa: float) -> float:
        return self.coating.transmission(cxr, toa) / std.coating.transmission(cxr, std_toa)

    def zafc(self, std: "ZAFCorrection", cxr: CharXRay, toa: float, std_toa: float) -> float:
        return (
            self.z_factor(std)
            * self.a_factor(std, cxr, toa, std_toa)
            * self.f_factor(std, cxr, toa, std_toa)
            * self.coating_factor(std, cxr, toa, std_toa)
        )

    def gzafc(self, std: "ZAFCorrection", cxr: CharXRay, toa: float, std_toa: float) -> float:
        return self.generation(std) * self.zafc(std, cxr, toa, std_toa)

    def __repr__(self) -> str:
        return f"ZAF[{self.za}, {self.f}, {self.coating}]"


class MultiZAF:
    """
    Corrections for a set of lines of one element measured together.

    Lines are combined in proportion to their relative weights. Each distinct
    inner sub-shell carries its own ``ZAFCorrection``.
    """

    def __init__(self, lines: Sequence[CharXRay], zafs: Dict[AtomicSubShell, ZAFCorrection]):
        if not lines:
            raise InvalidInputError("Must specify at least one characteristic X-ray.")
        self.lines: List[CharXRay] = list(lines)
        self.zafs = zafs

    @property
    def material(self) -> Material:
        return next(iter(self.zafs.values())).material

    @property
    def e0(self) -> float:
        return next(iter(self.zafs.values())).e0

    def _weights(self) -> List[float]:
        weights = [cxr.weight for cxr in self.lines]
        if sum(weights) <= 0.0:
            return [1.0] * len(self.lines)
        return weights

    def intensity(self, toa: float) -> float:
        """Weighted total emitted intensity per unit mass fraction."""
        return sum(
            w * self.zafs[cxr.inner_shell].intensity(cxr, toa)
            for w, cxr in zip(self._weights(), self.lines)
        )

    def components(self, std: "MultiZAF", toa: float, std_toa: float) -> Dict[str, float]:
        """
        The individual correction factors for the brightest line.

        Returns
        -------
        Dict[str, float]
            Keys 'Z', 'A', 'F', 'g', 'c', 'ZAFc' and 'gZAFc'
        """
        cxr = brightest(self.lines)
        unk, st = self.zafs[cxr.inner_shell], std.zafs[cxr.inner_shell]
        return {
            "Z": unk.z_factor(st),
            "A": unk.a_factor(st, cxr, toa, std_toa),
            "F": unk.f_factor(st, cxr, toa, std_toa),
            "g": unk.generation(st),
            "c": unk.coating_factor(st, cxr, toa, std_toa),
            "ZAFc": unk.zafc(st, cxr, toa, std_toa),
            "gZAFc": unk.gzafc(st, cxr, toa, std_toa),
        }

    def __repr__(self) -> str:
        return f"MultiZAF[{self.lines} in {self.material.name}]"


def build_correction(
    mc: Type[MatrixCorrection],
    fc: Type[FluorescenceCorrection],
    cc: Type[CoatingCorrection],
    material: Material,
    lines: Sequence[CharXRay],
    e0: float,
    coating: Optional[Film] = None,
) -> MultiZAF:
    """
    Build the combined correction for ``lines`` in ``material`` at beam energy ``e0``.

    Parameters
    ----------
    mc, fc, cc : type
        Matrix, fluorescence and coating correction algorithms
    material : Material
        Composition (standard or current estimate of the unknown)
    lines : Sequence[CharXRay]
        Lines of a single element
    e0 : float
        Beam energy in eV
    coating : Film, optional
        Conductive coating

    Returns
    -------
    MultiZAF
    """
    zafs: Dict[AtomicSubShell, ZAFCorrection] = {}
    for cxr in lines:
        shell = cxr.inner_shell
        if shell not in zafs:
            zafs[shell] = ZAFCorrection(
                mc.create(material, shell, e0),
                fc.create(material, shell, e0),
                cc.create(coating),
            )
    return MultiZAF(lines, zafs)


def combined_factor(unk: MultiZAF, std: MultiZAF, toa: float, std_toa: float) -> float:
    """
    The intensity-weighted gZAFc relating the unknown to the standard.

    k = (C_unk / C_std) * combined_factor(...)
    """
    return unk.intensity(toa) / std.intensity(std_toa)
