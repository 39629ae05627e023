"""
Core utilities.

This module provides:
- Physical constants and condition keys
- Units and unit conversion
- Configuration and logging
- Caching utilities
- Exceptions
- Abstract base classes
"""

from epmaquant.core import constants
from epmaquant.core import units
from epmaquant.core import config
from epmaquant.core import logging_config
from epmaquant.core.cache import (
    LRUCache,
    cached_atomic_data,
    cached_mac,
    get_cache_stats,
    clear_all_caches,
)
from epmaquant.core.exceptions import (
    EPMAQuantError,
    InvalidInputError,
    InvalidStandardError,
    UnknownAtomicDataError,
)
from epmaquant.core.abc import (
    XRayDataSource,
    MatrixCorrection,
    FluorescenceCorrection,
    CoatingCorrection,
    UpdateRule,
    ConvergenceTest,
    UnmeasuredElementRule,
    KRatioOptimizer,
)

__all__ = [
    # Modules
    "constants",
    "units",
    "config",
    "logging_config",
    # Caching
    "LRUCache",
    "cached_atomic_data",
    "cached_mac",
    "get_cache_stats",
    "clear_all_caches",
    # Exceptions
    "EPMAQuantError",
    "InvalidInputError",
    "InvalidStandardError",
    "UnknownAtomicDataError",
    # Abstract base classes
    "XRayDataSource",
    "MatrixCorrection",
    "FluorescenceCorrection",
    "CoatingCorrection",
    "UpdateRule",
    "ConvergenceTest",
    "UnmeasuredElementRule",
    "KRatioOptimizer",
]
