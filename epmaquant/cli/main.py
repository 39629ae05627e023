"""
Main CLI entry point for epmaquant.
"""

import argparse
import copy
import sys
from typing import Any, Dict, List, Optional

from epmaquant.core.logging_config import LEVELS, setup_logging, get_logger

logger = get_logger("cli.main")


def _sample_from_config(config: Dict[str, Any]):
    from epmaquant.atomic.structures import Element
    from epmaquant.material.material import Material

    if "sample" not in config:
        raise ValueError("Configuration must contain 'sample' section")
    sample = config["sample"]
    if "formula" in sample:
        return Material.from_formula(sample["formula"], sample.get("density"), sample.get("name"))
    if "composition" in sample:
        return Material(
            sample.get("name", "Sample"),
            {Element.from_symbol(sym): float(c) for sym, c in sample["composition"].items()},
            sample.get("density"),
        )
    raise ValueError("Sample config requires a 'formula' or a 'composition'")


def quantify_cmd(args):
    """Quantification command."""
    from epmaquant.core.config import (
        load_config,
        save_config,
        validate_iteration_config,
        validate_measurement_config,
    )
    from epmaquant.core.factory import IterationFactory, coating_from_config, kratios_from_config
    from epmaquant.inversion.iteration import quantify

    logger.info(f"Loading configuration from {args.config}")
    config = load_config(args.config)

    validate_iteration_config(config)
    validate_measurement_config(config)

    iteration, max_iter = IterationFactory.from_config(config)
    kratios = kratios_from_config(config)
    coating = coating_from_config(config)
    label = config["measurement"].get("label", "Unknown")

    result = quantify(label, kratios, iteration, max_iter=max_iter, coating=coating)

    print(result.summary())
    print("# Element, Mass fraction, Uncertainty")
    comp = result.comp
    for elm in comp.elements:
        value = comp[elm]
        sigma = getattr(value, "std_dev", 0.0)
        print(f"{elm.symbol},{comp.nominal(elm):.6f},{sigma:.6f}")
    if result.coating is not None:
        print(f"# Coating: {result.coating}")

    if args.output:
        output: Dict[str, Any] = {
            "label": result.label,
            "converged": result.converged,
            "iterations": result.iterations,
            "composition": {elm.symbol: comp.nominal(elm) for elm in comp.elements},
        }
        save_config(output, args.output)
        print(f"Results saved to {args.output}")

    logger.info("Quantification complete")


def simulate_cmd(args):
    """K-ratio simulation command."""
    from epmaquant.core.config import (
        load_config,
        save_config,
        validate_iteration_config,
        validate_measurement_config,
    )
    from epmaquant.core.factory import IterationFactory, kratios_from_config
    from epmaquant.validation.round_trip import simulate_kratios

    logger.info(f"Loading configuration from {args.config}")
    config = load_config(args.config)

    validate_iteration_config(config)
    validate_measurement_config(config, require_kratios=False)

    iteration, _ = IterationFactory.from_config(config)
    material = _sample_from_config(config)
    templates = kratios_from_config(config)

    kratios = simulate_kratios(material, templates, iteration, noise=args.noise, seed=args.seed)

    print(f"# Simulated k-ratios for {material}")
    print("# Lines, Standard, k-ratio")
    entries: List[Dict[str, Any]] = config["measurement"]["kratios"]
    simulated = copy.deepcopy(config)
    for entry, kr in zip(simulated["measurement"]["kratios"], kratios):
        print(f"{' + '.join(cxr.name for cxr in kr.lines)},{kr.standard.name},{kr.nominal_kratio:.6f}")
        entry["kratio"] = kr.nominal_kratio
        if kr.uncertainty > 0.0:
            entry["uncertainty"] = kr.uncertainty
    logger.debug(f"Simulated {len(entries)} k-ratios")

    if args.output:
        # The output can be passed straight to 'epmaquant quantify'
        save_config(simulated, args.output)
        print(f"Measurement saved to {args.output}")

    logger.info("Simulation complete")


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="epmaquant: Electron-probe microanalysis matrix correction and quantification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")

    parser.add_argument(
        "--log-level",
        choices=LEVELS,
        default="INFO",
        help="Set logging level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Quantification command
    quantify_parser = subparsers.add_parser(
        "quantify", help="Quantify measured k-ratios from configuration"
    )
    quantify_parser.add_argument(
        "config", type=str, help="Path to configuration file (YAML or JSON)"
    )
    quantify_parser.add_argument(
        "--output", type=str, default=None, help="Output file path for results (YAML or JSON)"
    )
    quantify_parser.set_defaults(func=quantify_cmd)

    # Simulation command
    simulate_parser = subparsers.add_parser(
        "simulate", help="Compute k-ratios for a known composition"
    )
    simulate_parser.add_argument(
        "config", type=str, help="Path to configuration file (YAML or JSON)"
    )
    simulate_parser.add_argument(
        "--noise", type=float, default=0.0, help="Relative Gaussian k-ratio noise (default: 0)"
    )
    simulate_parser.add_argument("--seed", type=int, default=42, help="Random seed")
    simulate_parser.add_argument(
        "--output", type=str, default=None, help="Write a measurement config with the k-ratios"
    )
    simulate_parser.set_defaults(func=simulate_cmd)

    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(level=args.log_level)

    # Execute command
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except Exception as e:
        logger.error(f"Error executing command: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
