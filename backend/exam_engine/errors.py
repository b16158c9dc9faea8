"""
Exception taxonomy of the exam engine.

Services raise these; routers turn them into HTTP errors.
"""


class ExamEngineError(Exception):
    """Base class for every error raised by the engine."""


class LoadFailure(ExamEngineError):
    """The question set could not be fetched or was empty/malformed."""


class QuestionShapeError(LoadFailure):
    """A raw question record has a shape the normalizer does not recognize."""


class AuthorizationFailure(ExamEngineError):
    """Student is not enrolled in the exam's batch and the batch is not public."""


class ConfigurationFailure(ExamEngineError):
    """Invalid subject selection or session options. Blocks start."""


class ExamUnavailable(ExamEngineError):
    """A live exam was started outside its availability window."""


class SessionStateError(ExamEngineError):
    """Operation not allowed in the current session state."""


class SubmissionTransportFailure(ExamEngineError):
    """The attempt could not reach durable storage. Safe to retry."""
