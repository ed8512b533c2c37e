"""
Pipeline exceptions.

Numeric edge cases are resolved locally and never raised. These exceptions
cover the conditions that must reach the caller: misuse of the pipeline
and reads that return nothing where no fallback exists.
"""


class PipelineError(Exception):
    """Base exception for feature pipeline failures."""
    pass


class ConfigurationError(PipelineError):
    """Raised when the pipeline is used out of order or misconfigured."""
    pass


class NoDataAvailableError(PipelineError):
    """Raised when the data source returns zero rows and there is no fallback."""
    pass
