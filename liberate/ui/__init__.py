"""UI."""

from liberate.ui.reporter import Reporter

__all__ = ["Reporter"]
