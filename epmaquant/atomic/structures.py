"""
Data structures for elements, atomic sub-shells and characteristic X-rays.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np

from epmaquant.atomic.database import SHELL_NAMES, get_database
from epmaquant.core.exceptions import InvalidInputError, UnknownAtomicDataError

# Principal quantum number of each shell family
_FAMILY_N = {"K": 1, "L": 2, "M": 3, "N": 4}

# Transitions considered when enumerating an element's characteristic lines
TRANSITIONS = (
    ("K", "L2"), ("K", "L3"), ("K", "M2"), ("K", "M3"), ("K", "N2"), ("K", "N3"),
    ("L1", "M2"), ("L1", "M3"), ("L1", "N2"), ("L1", "N3"),
    ("L2", "M1"), ("L2", "M4"), ("L2", "N1"), ("L2", "N4"),
    ("L3", "M1"), ("L3", "M4"), ("L3", "M5"), ("L3", "N1"), ("L3", "N4"), ("L3", "N5"),
    ("M3", "N1"), ("M3", "N4"), ("M3", "N5"),
    ("M4", "N2"), ("M4", "N6"),
    ("M5", "N3"), ("M5", "N6"), ("M5", "N7"),
)

_LINE_PATTERN = re.compile(r"^\s*([A-Z][a-z]?)\s+([KLMN]\d?)\s*-\s*([KLMN]\d)\s*$")


@dataclass(frozen=True, order=True)
class Element:
    """
    A chemical element.

    Attributes
    ----------
    z : int
        Atomic number
    """

    z: int

    def __post_init__(self):
        if not 1 <= self.z <= 99:
            raise InvalidInputError(f"Atomic number out of range: {self.z}")

    @classmethod
    def from_symbol(cls, symbol: str) -> "Element":
        """Look up an element by symbol (e.g. 'Fe')."""
        return cls(get_database().atomic_number(symbol))

    @property
    def symbol(self) -> str:
        return get_database().symbol(self.z)

    @property
    def atomic_weight(self) -> float:
        """Atomic weight in g/mol."""
        return get_database().atomic_weight(self.z)

    @property
    def density(self) -> float:
        """Elemental density in g/cm^3."""
        return get_database().density(self.z)

    @property
    def mean_ionization_potential(self) -> float:
        """Mean ionization potential J in eV (Zeller 1973)."""
        return self.z * (10.04 + 8.25 * np.exp(-self.z / 11.22))

    def __repr__(self) -> str:
        return self.symbol


@dataclass(frozen=True, order=True)
class AtomicSubShell:
    """
    An atomic sub-shell of a specific element.

    Attributes
    ----------
    z : int
        Atomic number
    name : str
        Sub-shell name ('K', 'L1'...'L3', 'M1'...'M5', 'N1'...'N7')
    """

    z: int
    name: str

    def __post_init__(self):
        if self.name not in SHELL_NAMES:
            raise InvalidInputError(f"Unknown atomic sub-shell: {self.name}")

    @property
    def element(self) -> Element:
        return Element(self.z)

    @property
    def family(self) -> str:
        """Shell family: 'K', 'L', 'M' or 'N'."""
        return self.name[0]

    @property
    def n(self) -> int:
        """Principal quantum number."""
        return _FAMILY_N[self.family]

    @property
    def edge_energy(self) -> float:
        """Ionization edge energy in eV."""
        return get_database().edge_energy(self.z, self.name)

    @property
    def fluorescence_yield(self) -> float:
        return get_database().fluorescence_yield(self.z, self.name)

    @property
    def jump_ratio(self) -> float:
        return get_database().jump_ratio(self.z, self.name)

    def __repr__(self) -> str:
        return f"{self.element.symbol} {self.name}"


@dataclass(frozen=True, order=True)
class CharXRay:
    """
    A characteristic X-ray line identified by its IUPAC transition.

    Attributes
    ----------
    z : int
        Atomic number of the emitting element
    inner : str
        Sub-shell holding the initial vacancy (e.g. 'K')
    outer : str
        Sub-shell the vacancy moves to (e.g. 'L3')
    """

    z: int
    inner: str
    outer: str

    def __post_init__(self):
        for shell in (self.inner, self.outer):
            if shell not in SHELL_NAMES:
                raise InvalidInputError(f"Unknown atomic sub-shell: {shell}")

    @property
    def element(self) -> Element:
        return Element(self.z)

    @property
    def inner_shell(self) -> AtomicSubShell:
        return AtomicSubShell(self.z, self.inner)

    @property
    def outer_shell(self) -> AtomicSubShell:
        return AtomicSubShell(self.z, self.outer)

    @property
    def family(self) -> str:
        return self.inner[0]

    @property
    def energy(self) -> float:
        """Line energy in eV."""
        return get_database().line_energy(self.z, self.inner, self.outer)

    @property
    def edge_energy(self) -> float:
        """Edge energy of the inner sub-shell in eV."""
        return self.inner_shell.edge_energy

    @property
    def raw_weight(self) -> float:
        """Fluorescence yield of the inner shell times the radiative rate."""
        db = get_database()
        try:
            return db.fluorescence_yield(self.z, self.inner) * db.radiative_rate(
                self.z, self.inner, self.outer
            )
        except UnknownAtomicDataError:
            return 0.0

    @property
    def weight(self) -> float:
        """Line intensity relative to the brightest line in the same family (=1)."""
        family = family_lines(self.z, self.family)
        brightest_weight = max((cxr.raw_weight for cxr in family), default=0.0)
        return self.raw_weight / brightest_weight if brightest_weight > 0.0 else 0.0

    @property
    def norm_weight(self) -> float:
        """Line intensity as a fraction of the total for the family."""
        total = sum(cxr.raw_weight for cxr in family_lines(self.z, self.family))
        return self.raw_weight / total if total > 0.0 else 0.0

    @property
    def name(self) -> str:
        return f"{self.element.symbol} {self.inner}-{self.outer}"

    def __repr__(self) -> str:
        return self.name


def _exists(cxr: CharXRay) -> bool:
    try:
        cxr.energy
        cxr.edge_energy
    except UnknownAtomicDataError:
        return False
    return True


def family_lines(z: int, family: str) -> List[CharXRay]:
    """All available lines of element ``z`` whose inner shell is in ``family``."""
    return [
        cxr
        for cxr in (CharXRay(z, inner, outer) for inner, outer in TRANSITIONS)
        if cxr.family == family and _exists(cxr)
    ]


def characteristic(
    element: Element, min_weight: float = 0.0, max_edge: Optional[float] = None
) -> List[CharXRay]:
    """
    List the characteristic X-rays of an element.

    Parameters
    ----------
    element : Element
        Emitting element
    min_weight : float
        Only include lines with weight strictly above this value
    max_edge : float, optional
        Only include lines whose inner edge lies below this energy (eV), such as
        the beam energy

    Returns
    -------
    List[CharXRay]
        Available lines
    """
    lines = []
    for inner, outer in TRANSITIONS:
        cxr = CharXRay(element.z, inner, outer)
        if not _exists(cxr):
            continue
        if max_edge is not None and cxr.edge_energy >= max_edge:
            continue
        if cxr.weight > min_weight:
            lines.append(cxr)
    return lines


def brightest(lines: Iterable[CharXRay]) -> CharXRay:
    """The line with the largest weight (first such line on ties)."""
    lines = list(lines)
    if not lines:
        raise InvalidInputError("Must specify at least one characteristic X-ray.")
    return max(lines, key=lambda cxr: cxr.weight)


def parse_line(name: str) -> CharXRay:
    """
    Parse an IUPAC line name such as 'Si K-L3' or 'Fe L3-M5'.

    Parameters
    ----------
    name : str
        Element symbol followed by the transition

    Returns
    -------
    CharXRay
    """
    match = _LINE_PATTERN.match(name)
    if match is None:
        raise InvalidInputError(f"Unable to parse characteristic X-ray name: {name!r}")
    symbol, inner, outer = match.groups()
    return CharXRay(Element.from_symbol(symbol).z, inner, outer)
