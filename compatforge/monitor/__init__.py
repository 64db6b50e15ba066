"""Terminal rendering of run records."""

from compatforge.monitor.renderer import RunRenderer

__all__ = ["RunRenderer"]
