"""Orchestration layer.

This module contains high-level workflow orchestrators that coordinate
the execution of pipeline operations.
"""

from liberate.orchestrators.conversion import Conversion
from liberate.orchestrators.liberation import Liberation
from liberate.orchestrators.transfer import Transfer

__all__ = [
    "Conversion",
    "Liberation",
    "Transfer",
]
