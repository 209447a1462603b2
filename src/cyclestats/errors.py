# src/cyclestats/errors.py

"""
Exception taxonomy. Every error subclasses ``ValueError`` so callers that
already guard bad input with ``except ValueError`` keep working.
"""


class CycleStatsError(ValueError):
    """Base class for all cyclestats errors."""


class SchemaError(CycleStatsError):
    """A required column is missing, mistyped, or holds invalid values."""


class InvalidLevelError(CycleStatsError):
    """An observed value is not part of the declared categorical ordering."""


class RankDeficiencyError(CycleStatsError):
    """The design matrix does not have full column rank."""


class NestedModelError(CycleStatsError):
    """Two fitted models are not nested on the same rows and response."""


class InsufficientDataError(CycleStatsError):
    """Too few observations for the requested statistic."""
