"""Borrowing power, stamp duty and serviceability calculations.

This module also exposes the package version for runtime display."""

from importlib import metadata

from borrowpower.calculators import (
    calculate_borrowing_power,
    calculate_borrowing_power_iterative,
    calculate_loan_serviceability,
)
from borrowpower.rates import RateResolver, RateTable, load_rate_table
from borrowpower.stamp_duty import calculate_progressive_duty, calculate_stamp_duty

try:
    __version__ = metadata.version("borrowpower")
except metadata.PackageNotFoundError:  # pragma: no cover - during local dev
    __version__ = "0.1.0"

__all__ = [
    "__version__",
    "RateResolver",
    "RateTable",
    "calculate_borrowing_power",
    "calculate_borrowing_power_iterative",
    "calculate_loan_serviceability",
    "calculate_progressive_duty",
    "calculate_stamp_duty",
    "load_rate_table",
]
