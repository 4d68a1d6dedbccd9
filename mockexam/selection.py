from __future__ import annotations
"""Unit selection, selection validation and generation request building.

Everything here is pure: the selection is an immutable value object and the
validator/builder take it as an argument instead of reading shared state.
"""

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import PreconditionError
from .types import UNIT_SLOTS, AIConfig, ExamType, GenerationRequest, SubjectContext, TopicSet

MID_SEM_UNIT_COUNT = 2
MID_SEM_REJECTION = "Exactly two units must be selected for mid semester exam"


def _default_units() -> Dict[str, bool]:
    return {"unit1": True, "unit2": True, "unit3": False, "unit4": False}


class SelectionState(BaseModel):
    """Which exam type is active and which unit slots are included.

    ``units`` always holds every slot of UNIT_SLOTS, in slot order.

    Example:
        >>> s = SelectionState().toggle_unit("unit3")
        >>> s.selected_units
        ['unit1', 'unit2', 'unit3']
    """
    model_config = ConfigDict(frozen=True)

    exam_type: ExamType = ExamType.MID_SEM
    units: Dict[str, bool] = Field(default_factory=_default_units)

    @field_validator("units")
    @classmethod
    def normalize_units(cls, v: Dict[str, bool]) -> Dict[str, bool]:
        unknown = [k for k in v if k not in UNIT_SLOTS]
        if unknown:
            raise ValueError(f"unknown unit slots {unknown}; expected a subset of {list(UNIT_SLOTS)}")
        return {slot: bool(v.get(slot, False)) for slot in UNIT_SLOTS}

    @classmethod
    def from_units(cls, exam_type: ExamType, selected: Iterable[str]) -> "SelectionState":
        """Build a state where exactly the given slots are included."""
        return cls(exam_type=exam_type, units={slot: True for slot in selected})

    def toggle_unit(self, unit: str) -> "SelectionState":
        if unit not in UNIT_SLOTS:
            raise ValueError(f"unknown unit slot {unit!r}")
        units = dict(self.units)
        units[unit] = not units[unit]
        return SelectionState(exam_type=self.exam_type, units=units)

    def with_exam_type(self, exam_type: ExamType) -> "SelectionState":
        return SelectionState(exam_type=ExamType(exam_type), units=self.units)

    @property
    def selected_units(self) -> List[str]:
        return [slot for slot in UNIT_SLOTS if self.units[slot]]


class ValidationResult(BaseModel):
    """Outcome of ``validate_selection``: ok, or rejected with a reason."""
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def accept(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def reject(cls, reason: str) -> "ValidationResult":
        return cls(ok=False, reason=reason)


def validate_selection(exam_type: ExamType, units: Dict[str, bool]) -> ValidationResult:
    """Check the per-format unit count rule.

    Mid semester exams need exactly two units. End semester exams have no
    count rule.

    Example:
        >>> validate_selection(ExamType.MID_SEM, {"unit1": True, "unit2": True}).ok
        True
        >>> validate_selection(ExamType.MID_SEM, {"unit1": True}).reason
        'Exactly two units must be selected for mid semester exam'
    """
    if ExamType(exam_type) is ExamType.MID_SEM:
        selected = sum(1 for included in units.values() if included)
        if selected != MID_SEM_UNIT_COUNT:
            return ValidationResult.reject(MID_SEM_REJECTION)
    return ValidationResult.accept()


def build_request(
    units: Dict[str, bool],
    topics: TopicSet,
    subject: SubjectContext,
    exam_type: ExamType,
    ai: Optional[AIConfig] = None,
) -> GenerationRequest:
    """Map a validated selection and subject identity to a GenerationRequest.

    Topic lists of selected slots are emitted in fixed slot order; unselected
    slots are left out, so ``len(request.topics)`` equals the selected count.

    Args:
        units: Included flag per unit slot.
        topics: One topic list per slot, aligned with UNIT_SLOTS.
        subject: Semester/branch/subject identifiers; all three are required.
        exam_type: Requested exam format.
        ai: Source of the credential and model identifier, checked later by the client.

    Raises:
        PreconditionError: if a subject identifier is missing or the topic set
            is not a list of lists with one entry per unit slot.
    """
    if not subject.is_complete:
        missing = [name for name in ("semester", "branch", "subject") if not getattr(subject, name)]
        raise PreconditionError(f"subject context is missing {', '.join(missing)}")
    if not isinstance(topics, (list, tuple)) or not all(isinstance(t, (list, tuple)) for t in topics):
        raise PreconditionError("topic set must be a list of topic lists")
    if len(topics) != len(UNIT_SLOTS):
        raise PreconditionError(f"expected {len(UNIT_SLOTS)} topic lists (one per unit), got {len(topics)}")

    selected_topics = [list(topics[i]) for i, slot in enumerate(UNIT_SLOTS) if units.get(slot, False)]
    ai = ai or AIConfig()
    return GenerationRequest(
        credential=ai.credential,
        model=ai.model,
        semester=subject.semester,
        branch=subject.branch,
        subject=subject.subject,
        exam_type=ExamType(exam_type),
        topics=selected_topics,
    )
