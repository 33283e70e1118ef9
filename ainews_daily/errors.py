"""Exception hierarchy for AI News Daily."""


class AINewsError(Exception):
    """Base error for the package."""
    pass


class PipelineError(AINewsError):
    """Unrecoverable run failure (input unreadable, output unwritable)."""
    pass


class DatasetWriteError(PipelineError):
    """The dataset document could not be committed to disk."""
    pass


class ModelLoadError(AINewsError):
    """A local model pipeline could not be loaded."""
    pass
