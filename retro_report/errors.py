"""Exceptions shared across the pipeline layers."""


class ConfigurationError(ValueError):
    """Raised when a run cannot proceed because its inputs are misconfigured.

    Covers a region table without the required columns, a folder without a
    usable metrics CSV, and invalid settings in the YAML configuration.
    The run aborts and nothing is published.
    """
