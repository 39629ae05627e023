"""
Tests for elements, sub-shells, characteristic X-rays and the atomic database.
"""

import pytest

from epmaquant.atomic.database import get_database
from epmaquant.atomic.structures import (
    AtomicSubShell,
    CharXRay,
    Element,
    brightest,
    characteristic,
    family_lines,
    parse_line,
)
from epmaquant.core.exceptions import InvalidInputError, UnknownAtomicDataError


class TestElement:
    def test_from_symbol(self):
        fe = Element.from_symbol("Fe")
        assert fe.z == 26
        assert fe.symbol == "Fe"
        assert repr(fe) == "Fe"

    def test_ordering_and_hashing(self):
        assert Element(8) < Element(14)
        assert len({Element(14), Element(14), Element(8)}) == 2

    def test_invalid_z(self):
        with pytest.raises(InvalidInputError):
            Element(0)
        with pytest.raises(InvalidInputError):
            Element(120)

    def test_unknown_symbol(self):
        with pytest.raises(UnknownAtomicDataError):
            Element.from_symbol("Xx")

    def test_atomic_weight(self):
        assert Element(14).atomic_weight == pytest.approx(28.09, rel=1e-3)

    def test_mean_ionization_potential(self):
        """Zeller's J increases with Z."""
        assert Element(8).mean_ionization_potential < Element(26).mean_ionization_potential


class TestAtomicSubShell:
    def test_properties(self):
        k = AtomicSubShell(26, "K")
        assert k.family == "K"
        assert k.n == 1
        assert k.edge_energy == pytest.approx(7112.0, rel=1e-2)
        assert 0.0 < k.fluorescence_yield < 1.0
        assert k.jump_ratio > 1.0

    def test_l3_shell(self):
        l3 = AtomicSubShell(26, "L3")
        assert l3.family == "L"
        assert l3.n == 2
        assert l3.edge_energy < AtomicSubShell(26, "K").edge_energy

    def test_invalid_shell(self):
        with pytest.raises(InvalidInputError):
            AtomicSubShell(26, "Q1")


class TestCharXRay:
    def test_parse_line(self):
        cxr = parse_line("Si K-L3")
        assert cxr == CharXRay(14, "K", "L3")
        assert cxr.name == "Si K-L3"
        assert cxr.element == Element(14)
        assert cxr.family == "K"

    def test_parse_line_invalid(self):
        with pytest.raises(InvalidInputError):
            parse_line("Silicon Ka")

    def test_energy(self):
        cxr = CharXRay(26, "K", "L3")
        assert cxr.energy == pytest.approx(6404.0, rel=1e-2)
        assert cxr.energy < cxr.edge_energy

    def test_weights(self):
        ka1 = CharXRay(26, "K", "L3")
        ka2 = CharXRay(26, "K", "L2")
        assert ka1.weight == pytest.approx(1.0)
        assert 0.0 < ka2.weight < 1.0
        total = sum(cxr.norm_weight for cxr in family_lines(26, "K"))
        assert total == pytest.approx(1.0)

    def test_brightest(self):
        ka1 = CharXRay(26, "K", "L3")
        ka2 = CharXRay(26, "K", "L2")
        assert brightest([ka2, ka1]) == ka1

    def test_brightest_empty(self):
        with pytest.raises(InvalidInputError):
            brightest([])

    def test_characteristic_max_edge(self):
        fe = Element(26)
        lines = characteristic(fe, max_edge=5000.0)
        assert lines
        assert all(cxr.family != "K" for cxr in lines)
        assert CharXRay(26, "K", "L3") in characteristic(fe, max_edge=20000.0)

    def test_characteristic_min_weight(self):
        fe = Element(26)
        bright = characteristic(fe, min_weight=0.5)
        assert all(cxr.weight > 0.5 for cxr in bright)
        assert len(bright) < len(characteristic(fe))


class TestDatabase:
    def test_mac(self):
        db = get_database()
        # Absorption below the Fe K edge is much smaller than above
        assert db.mac(26, 7000.0) < db.mac(26, 7200.0)

    def test_parse_formula(self):
        fractions = get_database().parse_formula("SiO2")
        assert set(fractions) == {8, 14}
        assert sum(fractions.values()) == pytest.approx(1.0)
        assert fractions[14] == pytest.approx(0.4674, rel=1e-3)

    def test_parse_formula_invalid(self):
        with pytest.raises(UnknownAtomicDataError):
            get_database().parse_formula("Qz2")

    def test_missing_line(self):
        with pytest.raises(UnknownAtomicDataError):
            get_database().line_energy(3, "L3", "M5")

    def test_singleton(self):
        assert get_database() is get_database()
