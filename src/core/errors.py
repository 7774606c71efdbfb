"""Exceptions raised by the core package."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a rule set or lookup table cannot be built from config."""


class PipelineOrderError(RuntimeError):
    """Raised when a pipeline stage cannot be installed in the declared order."""
