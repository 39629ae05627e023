"""
Factory patterns for creating correction algorithms, iteration policies and
measurements from configuration.
"""

from typing import Any, Dict, List, Optional, Tuple, Type

from uncertainties import ufloat

from epmaquant.atomic.structures import CharXRay, Element, parse_line
from epmaquant.core.abc import ConvergenceTest, UnmeasuredElementRule, UpdateRule
from epmaquant.core.constants import (
    BEAM_ENERGY,
    COATING,
    DEFAULT_MAX_ITER,
    DEFAULT_TOLERANCE,
    LIVE_TIME,
    PROBE_CURRENT,
    TAKE_OFF_ANGLE,
)
from epmaquant.core.logging_config import get_logger
from epmaquant.core.units import convert_angle, convert_energy
from epmaquant.correction.citzaf import CitZAF
from epmaquant.correction.coating import Coating, NullCoating
from epmaquant.correction.reed import NullFluorescence, ReedFluorescence
from epmaquant.correction.xpp import XPP
from epmaquant.inversion.convergence import AllBelowTolerance, IsApproximate, RMSBelowTolerance
from epmaquant.inversion.iteration import Iteration
from epmaquant.inversion.kratio import KRatio
from epmaquant.inversion.unmeasured import (
    ElementByDifference,
    ElementByFiat,
    NullUnmeasuredRule,
    OxygenByStoichiometry,
)
from epmaquant.inversion.update import NaiveUpdateRule, WegsteinUpdateRule
from epmaquant.material.material import Material, carbon_coating

logger = get_logger("core.factory")


class CorrectionFactory:
    """Factory for looking up correction algorithm classes by kind and name."""

    _corrections: Dict[str, Dict[str, type]] = {
        "matrix_correction": {},
        "fluorescence": {},
        "coating": {},
    }

    @classmethod
    def register(cls, kind: str, name: str, correction_class: type) -> None:
        """
        Register a correction class.

        Parameters
        ----------
        kind : str
            'matrix_correction', 'fluorescence' or 'coating'
        name : str
            Algorithm name
        correction_class : type
            Correction class
        """
        if kind not in cls._corrections:
            raise ValueError(f"Unknown correction kind: {kind}")
        cls._corrections[kind][name] = correction_class
        logger.debug(f"Registered {kind}: {name}")

    @classmethod
    def get(cls, kind: str, name: str) -> type:
        """
        Look up a correction class.

        Raises
        ------
        ValueError
            If the kind or name is not registered
        """
        if kind not in cls._corrections:
            raise ValueError(f"Unknown correction kind: {kind}")
        registry = cls._corrections[kind]
        if name.lower() not in registry:
            available = ", ".join(registry.keys())
            raise ValueError(f"Unknown {kind}: {name}. Available: {available}")
        return registry[name.lower()]

    @classmethod
    def list_corrections(cls, kind: str) -> list:
        """List available algorithm names of a kind."""
        return list(cls._corrections.get(kind, {}).keys())


class IterationFactory:
    """Factory for creating update rules, convergence tests and iterations."""

    _update_rules: Dict[str, Type[UpdateRule]] = {}

    @classmethod
    def register_update_rule(cls, name: str, rule_class: Type[UpdateRule]) -> None:
        cls._update_rules[name] = rule_class
        logger.debug(f"Registered update rule: {name}")

    @classmethod
    def create_update_rule(cls, name: str) -> UpdateRule:
        """
        Create an update rule instance.

        Raises
        ------
        ValueError
            If update rule name is not registered
        """
        if name.lower() not in cls._update_rules:
            available = ", ".join(cls._update_rules.keys())
            raise ValueError(f"Unknown update rule: {name}. Available: {available}")
        return cls._update_rules[name.lower()]()

    @classmethod
    def list_update_rules(cls) -> list:
        return list(cls._update_rules.keys())

    @staticmethod
    def create_convergence(config: Optional[Dict[str, Any]]) -> ConvergenceTest:
        """Create a convergence test from a 'convergence' section."""
        config = config or {}
        kind = str(config.get("type", "rms")).lower()
        if kind == "rms":
            return RMSBelowTolerance(config.get("tolerance", DEFAULT_TOLERANCE))
        elif kind == "all":
            return AllBelowTolerance(config.get("tolerance", DEFAULT_TOLERANCE))
        elif kind == "approximate":
            return IsApproximate(config.get("atol", DEFAULT_TOLERANCE), config.get("rtol", 1.0e-3))
        raise ValueError(f"Unknown convergence test: {kind}")

    @staticmethod
    def create_unmeasured(config: Optional[Dict[str, Any]]) -> UnmeasuredElementRule:
        """Create an unmeasured-element rule from an 'unmeasured' section."""
        if not config:
            return NullUnmeasuredRule()
        kind = str(config["type"]).lower()
        if kind == "null":
            return NullUnmeasuredRule()
        elif kind == "difference":
            return ElementByDifference(Element.from_symbol(config["element"]))
        elif kind == "fiat":
            return ElementByFiat(
                {Element.from_symbol(sym): float(c) for sym, c in config["composition"].items()}
            )
        elif kind == "oxygen_by_stoichiometry":
            valences = {
                Element.from_symbol(sym): float(v)
                for sym, v in (config.get("valences") or {}).items()
            }
            return OxygenByStoichiometry(valences)
        raise ValueError(f"Unknown unmeasured element rule: {kind}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> Tuple[Iteration, int]:
        """
        Build an Iteration and the step budget from an 'iteration' section.

        Parameters
        ----------
        config : dict
            Configuration dictionary (validated by ``validate_iteration_config``)

        Returns
        -------
        Tuple[Iteration, int]
            The iteration and max_iter
        """
        section = config.get("iteration", {}) or {}
        iteration = Iteration(
            mc=CorrectionFactory.get("matrix_correction", section.get("matrix_correction", "xpp")),
            fc=CorrectionFactory.get("fluorescence", section.get("fluorescence", "reed")),
            cc=CorrectionFactory.get("coating", section.get("coating", "coating")),
            updater=cls.create_update_rule(section.get("update_rule", "wegstein")),
            convergence=cls.create_convergence(section.get("convergence")),
            unmeasured=cls.create_unmeasured(section.get("unmeasured")),
        )
        max_iter = int(section.get("max_iter", DEFAULT_MAX_ITER))
        logger.debug(f"Created {iteration} with max_iter={max_iter}")
        return iteration, max_iter


def conditions_from_config(section: Dict[str, Any]) -> Dict[str, Any]:
    """Measurement conditions (eV, radians, Film) from a conditions section."""
    props: Dict[str, Any] = {
        BEAM_ENERGY: convert_energy(section["beam_energy_kev"], "keV", "eV"),
        TAKE_OFF_ANGLE: convert_angle(section["take_off_angle_deg"], "deg", "rad"),
    }
    if section.get("coating_nm"):
        props[COATING] = carbon_coating(section["coating_nm"])
    if section.get("probe_current_na") is not None:
        props[PROBE_CURRENT] = float(section["probe_current_na"])
    if section.get("live_time_s") is not None:
        props[LIVE_TIME] = float(section["live_time_s"])
    return props


def _standard(entry: Any) -> Material:
    if isinstance(entry, dict):
        return Material.from_formula(entry["formula"], entry.get("density"), entry.get("name"))
    return Material.from_formula(str(entry))


def kratios_from_config(config: Dict[str, Any]) -> List[KRatio]:
    """
    Build k-ratios from a validated 'measurement' section.

    Entries without a 'kratio' value get 0.0, for use as simulation templates.
    """
    meas = config["measurement"]
    unk_props = conditions_from_config(meas["unknown"])
    std_props = conditions_from_config(meas["standard"])
    res = []
    for entry in meas["kratios"]:
        lines = entry["lines"]
        if isinstance(lines, str):
            lines = [lines]
        value: Any = float(entry.get("kratio", 0.0))
        if entry.get("uncertainty") is not None:
            value = ufloat(value, float(entry["uncertainty"]))
        res.append(
            KRatio(
                [parse_line(name) for name in lines],
                dict(unk_props),
                std_props,
                _standard(entry["standard"]),
                value,
            )
        )
    return res


def coating_from_config(config: Dict[str, Any]) -> Optional[Tuple[CharXRay, Material]]:
    """The coating line and material for coating co-estimation, if configured."""
    coating = config["measurement"].get("coating")
    if coating is None:
        return None
    material = Material.from_formula(coating["formula"], coating["density"], coating.get("name"))
    return parse_line(coating["line"]), material


# Register default implementations
CorrectionFactory.register("matrix_correction", "xpp", XPP)
CorrectionFactory.register("matrix_correction", "citzaf", CitZAF)
CorrectionFactory.register("fluorescence", "reed", ReedFluorescence)
CorrectionFactory.register("fluorescence", "null", NullFluorescence)
CorrectionFactory.register("coating", "coating", Coating)
CorrectionFactory.register("coating", "null", NullCoating)
IterationFactory.register_update_rule("wegstein", WegsteinUpdateRule)
IterationFactory.register_update_rule("naive", NaiveUpdateRule)
