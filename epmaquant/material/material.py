"""
Material (composition) and thin-film representations.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Union

import numpy as np
from uncertainties import UFloat
from uncertainties import nominal_value

from epmaquant.atomic.database import get_database
from epmaquant.atomic.structures import CharXRay, Element
from epmaquant.core.constants import CARBON_DENSITY
from epmaquant.core.exceptions import InvalidInputError
from epmaquant.core.units import convert_length

MassFraction = Union[float, UFloat]


class Material(Mapping):
    """
    A named composition: Element -> mass fraction.

    Mass fractions may carry uncertainties (``uncertainties.UFloat``) and need
    not sum to unity. Elements that are not present read as zero.

    Attributes
    ----------
    name : str
        Material name
    mass_fractions : Dict[Element, float or UFloat]
        Mass fraction of each element
    density : float, optional
        Density in g/cm^3
    """

    def __init__(
        self,
        name: str,
        mass_fractions: Mapping[Element, MassFraction],
        density: Optional[float] = None,
    ):
        self.name = name
        self.mass_fractions: Dict[Element, MassFraction] = dict(mass_fractions)
        self.density = density
        for elm in self.mass_fractions:
            if not isinstance(elm, Element):
                raise InvalidInputError(f"Material keys must be Elements, got {elm!r}")

    @classmethod
    def from_formula(
        cls, formula: str, density: Optional[float] = None, name: Optional[str] = None
    ) -> "Material":
        """
        Build a material from a chemical formula.

        Parameters
        ----------
        formula : str
            Chemical formula (e.g. 'NaAlSi3O8')
        density : float, optional
            Density in g/cm^3
        name : str, optional
            Material name (defaults to the formula)

        Returns
        -------
        Material
        """
        fractions = get_database().parse_formula(formula)
        return cls(
            name or formula,
            {Element(z): w for z, w in fractions.items()},
            density=density,
        )

    @classmethod
    def pure(cls, element: Element) -> "Material":
        """A pure element at its elemental density."""
        return cls(f"Pure {element.symbol}", {element: 1.0}, density=element.density)

    def __getitem__(self, element: Element) -> MassFraction:
        return self.mass_fractions.get(element, 0.0)

    def __contains__(self, element: object) -> bool:
        return element in self.mass_fractions

    def __iter__(self) -> Iterator[Element]:
        return iter(self.mass_fractions)

    def __len__(self) -> int:
        return len(self.mass_fractions)

    @property
    def elements(self) -> List[Element]:
        return sorted(self.mass_fractions)

    def nominal(self, element: Element) -> float:
        """Mass fraction of ``element`` without its uncertainty."""
        return float(nominal_value(self[element]))

    def nonneg(self, element: Element) -> float:
        """Nominal mass fraction clipped at zero."""
        return max(0.0, self.nominal(element))

    @property
    def total(self) -> float:
        """Sum of the nominal mass fractions."""
        return sum(self.nominal(elm) for elm in self.mass_fractions)

    def normalized(self, total: float = 1.0) -> "Material":
        """
        A copy whose non-negative nominal mass fractions sum to ``total``.
        """
        fractions = {elm: self.nonneg(elm) for elm in self.mass_fractions}
        norm = sum(fractions.values())
        if norm <= 0.0:
            return Material(self.name, fractions, self.density)
        return Material(
            self.name, {elm: total * c / norm for elm, c in fractions.items()}, self.density
        )

    def atomic_fraction(self, element: Element) -> float:
        """Atom fraction of ``element``."""
        moles = {elm: self.nonneg(elm) / elm.atomic_weight for elm in self.mass_fractions}
        total = sum(moles.values())
        return moles.get(element, 0.0) / total if total > 0.0 else 0.0

    def mac(self, cxr: CharXRay) -> float:
        """Mass absorption coefficient (cm^2/g) of this material for ``cxr``."""
        db = get_database()
        energy = cxr.energy
        return sum(self.nonneg(elm) * db.mac(elm.z, energy) for elm in self.mass_fractions)

    @property
    def mean_z(self) -> float:
        """Mass-fraction weighted mean atomic number."""
        total = sum(self.nonneg(elm) for elm in self.mass_fractions)
        if total <= 0.0:
            return 0.0
        return sum(self.nonneg(elm) * elm.z for elm in self.mass_fractions) / total

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Material):
            return NotImplemented
        return (
            self.name == other.name
            and self.density == other.density
            and self.mass_fractions == other.mass_fractions
        )

    __hash__ = None

    def __repr__(self) -> str:
        parts = ", ".join(
            f"{elm.symbol}={self.nominal(elm):.4f}" for elm in self.elements
        )
        return f"{self.name}[{parts}]"


@dataclass(frozen=True)
class Film:
    """
    A thin film of uniform composition, such as a conductive coating.

    Attributes
    ----------
    material : Material
        Film composition; must have a positive density
    thickness : float
        Thickness in cm
    """

    material: Material
    thickness: float

    def __post_init__(self):
        if self.material.density is None or self.material.density <= 0.0:
            raise InvalidInputError(
                f"A film requires a material with a positive density: {self.material.name}"
            )
        if self.thickness < 0.0:
            raise InvalidInputError(f"Film thickness must be non-negative: {self.thickness}")

    @property
    def mass_thickness(self) -> float:
        """Mass thickness in g/cm^2."""
        return self.material.density * self.thickness

    def transmission(self, cxr: CharXRay, toa: float) -> float:
        """Fraction of ``cxr`` transmitted through the film at take-off angle ``toa``."""
        return float(np.exp(-self.material.mac(cxr) * self.mass_thickness / np.sin(toa)))

    def __repr__(self) -> str:
        return f"{convert_length(self.thickness, 'cm', 'nm'):.1f} nm of {self.material.name}"


def carbon_coating(thickness_nm: float) -> Film:
    """
    An evaporated carbon coating.

    Parameters
    ----------
    thickness_nm : float
        Thickness in nm

    Returns
    -------
    Film
    """
    carbon = Material("Carbon", {Element(6): 1.0}, density=CARBON_DENSITY)
    return Film(carbon, convert_length(thickness_nm, "nm", "cm"))
