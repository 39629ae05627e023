"""
Validation tools for quantification.
"""

from epmaquant.validation.round_trip import RoundTripResult, RoundTripValidator, simulate_kratios

__all__ = ["RoundTripResult", "RoundTripValidator", "simulate_kratios"]
