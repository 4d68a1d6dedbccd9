from __future__ import annotations
import logging
from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import DocumentError


"""Core data models used across selection, generation and rendering."""

log = logging.getLogger(__name__)

UNIT_SLOTS = ("unit1", "unit2", "unit3", "unit4")

# One topic list per unit slot, index-aligned with UNIT_SLOTS.
TopicSet = List[List[str]]


class ExamType(str, Enum):
    MID_SEM = "midSem"
    END_SEM = "endSem"

    @property
    def label(self) -> str:
        return "Mid Semester" if self is ExamType.MID_SEM else "End Semester"


class ExamFormat(BaseModel):
    """Nominal parameters shown to the requester for an exam type.

    These describe what the backend is asked for; a generated payload is never
    checked against them.

    Example:
        >>> exam_format(ExamType.MID_SEM).units
        2
    """
    model_config = ConfigDict(frozen=True)

    exam_type: ExamType
    total_marks: int
    questions: int
    units: int
    duration: str

    @property
    def summary(self) -> str:
        return (
            f"The exam carries a total weightage of {self.total_marks} marks, "
            f"consists of {self.questions} questions covering {self.units} units, "
            f"and has a duration of {self.duration}."
        )


EXAM_FORMATS: Dict[ExamType, ExamFormat] = {
    ExamType.MID_SEM: ExamFormat(exam_type=ExamType.MID_SEM, total_marks=30, questions=4, units=2, duration="1.5 hours"),
    ExamType.END_SEM: ExamFormat(exam_type=ExamType.END_SEM, total_marks=75, questions=9, units=4, duration="3 hours"),
}


def exam_format(exam_type: ExamType) -> ExamFormat:
    return EXAM_FORMATS[ExamType(exam_type)]


class SubjectContext(BaseModel):
    """Semester/branch/subject identifiers supplied by the hosting route."""
    semester: Optional[str] = None
    branch: Optional[str] = None
    subject: Optional[str] = None

    @classmethod
    def from_path(cls, path: str) -> "SubjectContext":
        """Parse a ``semester/branch/subject`` route slug.

        Example:
            >>> SubjectContext.from_path("sem3/cse/dbms").subject
            'dbms'
            >>> SubjectContext.from_path("sem3").branch is None
            True
        """
        parts = [p for p in path.strip("/").split("/") if p]
        parts += [None] * (3 - len(parts))
        return cls(semester=parts[0], branch=parts[1], subject=parts[2])

    @property
    def is_complete(self) -> bool:
        return all([self.semester, self.branch, self.subject])


class AIConfig(BaseModel):
    """Read-only AI settings owned by the host.

    Attributes:
        enabled: Whether the user switched generation on.
        credential: API key forwarded to the backend.
        model: Model identifier; also decides which backend route is used.
    """
    enabled: bool = False
    credential: Optional[str] = None
    model: Optional[str] = None


class GenerationRequest(BaseModel):
    """Body posted to a generation backend. Serialize with ``by_alias=True``."""
    model_config = ConfigDict(populate_by_name=True)

    credential: Optional[str] = Field(default=None, alias="key")
    model: Optional[str] = None
    semester: str
    branch: str
    subject: str
    exam_type: ExamType = Field(alias="type")
    topics: List[List[str]] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# -------- Generated exam document ---------

class ExamMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    subject: str
    exam_type: ExamType = Field(validation_alias=AliasChoices("type", "examType", "exam_type"), serialization_alias="type")
    total_marks: float = Field(alias="totalMarks")
    duration: str
    questions_to_attempt: int = Field(alias="questionsToAttempt")
    total_questions: int = Field(alias="totalQuestions")


class SubQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sub_question: str = Field(alias="subQuestion")
    marks: float


class Question(BaseModel):
    """One numbered question; sub-questions are lettered by position when rendered."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    question_number: int = Field(alias="questionNumber", ge=1)
    is_compulsory: bool = Field(default=False, alias="isCompulsory")
    alternative_question_number: Optional[int] = Field(default=None, alias="alternativeQuestionNumber", ge=1)
    total_marks: float = Field(alias="totalMarks")
    content: List[SubQuestion] = Field(default_factory=list)


class ExamDocument(BaseModel):
    """A generated exam: metadata plus questions in presentation order.

    Immutable once built. Question numbers must be unique; "OR" references are
    displayed as given and only produce a warning when they point nowhere.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    metadata: ExamMetadata = Field(
        validation_alias=AliasChoices("examMetadata", "metadata"), serialization_alias="examMetadata"
    )
    questions: List[Question] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_question_numbers(self) -> "ExamDocument":
        numbers = [q.question_number for q in self.questions]
        duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate question numbers: {duplicates}")
        known = set(numbers)
        for q in self.questions:
            alt = q.alternative_question_number
            if alt is not None and (alt not in known or alt == q.question_number):
                log.warning("Q%s offers OR Q%s, which is not another question in this exam", q.question_number, alt)
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Wire form wrapped in the ``output`` envelope the backends use."""
        return {"output": self.model_dump(mode="json", by_alias=True)}


def parse_document(payload: Any) -> ExamDocument:
    """Validate a backend payload and build an ExamDocument.

    Accepts the backend envelope ``{"output": {...}}`` or a bare document.

    Raises:
        DocumentError: if the payload does not have the exam document shape.

    Example:
        >>> doc = parse_document({"output": {"examMetadata": {"subject": "DBMS", "type": "midSem",
        ...     "totalMarks": 30, "duration": "1.5 hours", "questionsToAttempt": 4, "totalQuestions": 4},
        ...     "questions": []}})
        >>> doc.metadata.subject
        'DBMS'
    """
    if isinstance(payload, dict) and isinstance(payload.get("output"), dict):
        payload = payload["output"]
    if not isinstance(payload, dict):
        raise DocumentError(f"exam payload must be a JSON object, got {type(payload).__name__}")
    try:
        return ExamDocument.model_validate(payload)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise DocumentError(f"malformed exam document ({problems})") from e
