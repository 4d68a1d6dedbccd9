from __future__ import annotations
from enum import Enum

from pydantic import BaseModel


"""Error taxonomy shared by the request, generation and rendering stages.

Two kinds of failure exist here:
- ``GenerationError`` values, returned inside results and shown to the user.
- Exceptions (``PreconditionError``, ``DocumentError``) for caller-contract
  violations and malformed exam payloads.
"""


class GenerationErrorKind(str, Enum):
    VALIDATION = "validation"
    FEATURE_DISABLED = "feature_disabled"
    MISSING_CREDENTIAL = "missing_credential"
    MISSING_MODEL = "missing_model"
    BACKEND = "backend"
    TRANSPORT = "transport"
    INVALID_DOCUMENT = "invalid_document"


class GenerationError(BaseModel):
    """A terminal, user-visible failure of one generation attempt.

    Attributes:
        kind: Which stage failed (see ``GenerationErrorKind``).
        message: Text suitable for showing to the user as-is.

    Example:
        >>> GenerationError(kind=GenerationErrorKind.MISSING_MODEL, message="Select model first!").kind.value
        'missing_model'
    """
    kind: GenerationErrorKind
    message: str


class PreconditionError(ValueError):
    """Raised when a caller hands the core inputs it promised never to send."""


class DocumentError(ValueError):
    """Raised when an exam payload cannot be turned into an ExamDocument."""
