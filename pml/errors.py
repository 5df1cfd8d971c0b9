"""Exceptions raised by the pipeline stages.

All of them derive from ``ValueError`` so callers that only care about bad
input can keep catching that.
"""


class PipelineError(ValueError):
    """Base class for pipeline failures."""


class ConfigurationError(PipelineError):
    """A run parameter is out of range or names something that does not exist."""


class SchemaMismatchError(PipelineError):
    """A table lacks columns another stage expects it to carry."""

    def __init__(self, message, columns=()):
        super().__init__(message)
        self.columns = list(columns)


class FitError(PipelineError):
    """A model family could not be fitted on the given table."""

    def __init__(self, family, message):
        super().__init__(f"[{family}] {message}")
        self.family = family
        self.message = message

    def __reduce__(self):
        return self.__class__, (self.family, self.message)
