"""
oulad_pass/errors.py

Exception types raised by the pipeline.

Malformed input and invalid configuration are fatal and surface immediately.
Degenerate cross-validation folds are NOT errors: the evaluator reports NaN
statistics for them instead (see oulad_pass/evaluation.py).
"""


class MalformedInputError(ValueError):
    """An input table is unreadable, lacks a required column, or holds an invalid label."""


class ConfigurationError(ValueError):
    """A PipelineConfig value is out of range or inconsistent with the chosen model."""


class ModelFitError(RuntimeError):
    """The classifier could not be fitted (e.g. the training rows hold a single class)."""
