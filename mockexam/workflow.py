from __future__ import annotations
"""Generation workflow: the idle/pending/success/failed state machine.

The workflow owns the current ExamDocument for the lifetime of the host
dialog. At most one request is in flight; each dispatch gets an attempt
number and a result is applied only while its attempt is still current, so
a call that finishes after ``close()`` is silently dropped.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

from .clients.generation_client import GenerationResult, check_preconditions
from .errors import DocumentError, GenerationError, GenerationErrorKind
from .render import PrintableDocument, render
from .selection import SelectionState, build_request, validate_selection
from .types import AIConfig, ExamDocument, GenerationRequest, SubjectContext, TopicSet

log = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class ExamGenerator(Protocol):
    ai: AIConfig

    async def generate(self, request: GenerationRequest) -> GenerationResult: ...


class GenerationWorkflow:
    def __init__(self, client: ExamGenerator):
        self.client = client
        self.state = WorkflowState.IDLE
        self.document: Optional[ExamDocument] = None
        self.error: Optional[GenerationError] = None
        self._attempt = 0

    @property
    def is_pending(self) -> bool:
        return self.state is WorkflowState.PENDING

    async def generate(
        self,
        selection: SelectionState,
        topics: TopicSet,
        subject: SubjectContext,
    ) -> Optional[GenerationResult]:
        """Validate, build and dispatch one generation request.

        Returns None when a request is already pending (the call is ignored).
        Otherwise returns the attempt's result. A request blocked locally (AI
        precondition or unit-count rule) only sets ``error``; the state and
        any document from an earlier attempt are kept.

        Raises:
            PreconditionError: if the subject context or topic set break the
                caller contract (see ``build_request``).
        """
        if self.is_pending:
            log.info("generation already in progress; ignoring new request")
            return None

        request = build_request(selection.units, topics, subject, selection.exam_type, self.client.ai)

        error = check_preconditions(self.client.ai, request)
        if error is None:
            verdict = validate_selection(selection.exam_type, selection.units)
            if not verdict.ok:
                error = GenerationError(kind=GenerationErrorKind.VALIDATION, message=verdict.reason)
        if error is not None:
            return self._reject(error)

        self._attempt += 1
        attempt = self._attempt
        self.state = WorkflowState.PENDING
        self.document = None
        self.error = None

        result = await self.client.generate(request)

        if attempt != self._attempt or not self.is_pending:
            log.info("discarding result of superseded attempt %d", attempt)
            return result
        if result.ok:
            self.state = WorkflowState.SUCCESS
            self.document = result.document
        else:
            self._fail(result.error)
        return result

    def _reject(self, error: GenerationError) -> GenerationResult:
        # Nothing was dispatched; the current state and document stay as they are.
        log.info("request rejected before dispatch: %s", error.message)
        self.error = error
        return GenerationResult(error=error)

    def _fail(self, error: GenerationError) -> None:
        self.state = WorkflowState.FAILED
        self.document = None
        self.error = error

    def close(self) -> None:
        """Return to idle; any in-flight result will be discarded."""
        if self.is_pending:
            log.info("closing while attempt %d is pending", self._attempt)
        self._attempt += 1
        self.state = WorkflowState.IDLE
        self.document = None
        self.error = None

    def export(self, generated_at: Optional[datetime] = None) -> PrintableDocument:
        if self.document is None:
            raise DocumentError("no generated exam to export")
        return render(self.document, generated_at or datetime.now())
