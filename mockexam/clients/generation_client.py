from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel, Field, model_validator

from ..errors import DocumentError, GenerationError, GenerationErrorKind
from ..types import AIConfig, ExamDocument, GenerationRequest, parse_document

log = logging.getLogger(__name__)

GOOGLE_MODEL_FAMILY = "gemini"
DEFAULT_TIMEOUT = 120.0

FEATURE_DISABLED_MESSAGE = "Toggle Ai first!"
MISSING_CREDENTIAL_MESSAGE = "Missing API Key!"
MISSING_MODEL_MESSAGE = "Select model first!"
UNREACHABLE_MESSAGE = "Could not reach the generation service"
UNREADABLE_MESSAGE = "Generation service returned an unreadable response"


class Backend(str, Enum):
    GOOGLE = "google"
    OPENAI = "openai"

    @property
    def route(self) -> str:
        return f"/api/{self.value}-generate-mock"


def select_backend(model: Optional[str]) -> Backend:
    """Pick the backend route for a model identifier.

    Identifiers containing "gemini" (any case, any position) go to the Google
    route; everything else, including an empty identifier, goes to OpenAI.

    Example:
        >>> select_backend("models/Gemini-1.5-flash")
        <Backend.GOOGLE: 'google'>
        >>> select_backend("gpt-4o-mini")
        <Backend.OPENAI: 'openai'>
    """
    if model and GOOGLE_MODEL_FAMILY in model.lower():
        return Backend.GOOGLE
    return Backend.OPENAI


def check_preconditions(ai: AIConfig, request: GenerationRequest) -> Optional[GenerationError]:
    """Return the first unmet AI precondition, or None when the request may be sent.

    Checked in order: feature toggle, credential, model identifier.
    """
    if not ai.enabled:
        return GenerationError(kind=GenerationErrorKind.FEATURE_DISABLED, message=FEATURE_DISABLED_MESSAGE)
    if not request.credential:
        return GenerationError(kind=GenerationErrorKind.MISSING_CREDENTIAL, message=MISSING_CREDENTIAL_MESSAGE)
    if not request.model:
        return GenerationError(kind=GenerationErrorKind.MISSING_MODEL, message=MISSING_MODEL_MESSAGE)
    return None


class GenerationResult(BaseModel):
    """Either a document or an error, never both."""
    document: Optional[ExamDocument] = None
    error: Optional[GenerationError] = None
    backend: Optional[Backend] = None

    @model_validator(mode="after")
    def check_exactly_one_outcome(self) -> "GenerationResult":
        if (self.document is None) == (self.error is None):
            raise ValueError("a generation result carries either a document or an error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None and self.document is not None

    @classmethod
    def failure(cls, kind: GenerationErrorKind, message: str, backend: Optional[Backend] = None) -> "GenerationResult":
        return cls(error=GenerationError(kind=kind, message=message), backend=backend)


class GenerationClientConfig(BaseModel):
    base_url: str = Field(default="http://localhost:3000", description="Origin serving the /api/*-generate-mock routes")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)


class GenerationClient:
    """Async client for the mock-exam generation backends.

    Contract:
    - input: a GenerationRequest built from a validated selection
    - behavior: checks the AI preconditions, posts the request to the route
      chosen by ``select_backend`` and validates the returned payload
    - output: a GenerationResult; failures are values, nothing is raised or retried
    """

    def __init__(
        self,
        ai: AIConfig,
        config: Optional[GenerationClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.ai = ai
        self.config = config or GenerationClientConfig()
        self._transport = transport

    def check_preconditions(self, request: GenerationRequest) -> Optional[GenerationError]:
        return check_preconditions(self.ai, request)

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        error = self.check_preconditions(request)
        if error is not None:
            log.info("generation blocked before dispatch: %s", error.kind.value)
            return GenerationResult(error=error)

        backend = select_backend(request.model)
        log.info("requesting %s exam for %s from %s backend (%d unit(s))",
                 request.exam_type.value, request.subject, backend.value, len(request.topics))
        try:
            async with httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
            ) as http:
                resp = await http.post(backend.route, json=request.to_wire())
        except httpx.HTTPError as e:
            log.warning("%s backend unreachable: %s", backend.value, e)
            return GenerationResult.failure(GenerationErrorKind.TRANSPORT, UNREACHABLE_MESSAGE, backend)

        if resp.is_error:
            message = _structured_error(resp)
            if message is not None:
                log.warning("%s backend reported an error (HTTP %d)", backend.value, resp.status_code)
                return GenerationResult.failure(GenerationErrorKind.BACKEND, message, backend)
            log.warning("%s backend failed with HTTP %d", backend.value, resp.status_code)
            return GenerationResult.failure(
                GenerationErrorKind.TRANSPORT, f"Request failed with status code {resp.status_code}", backend
            )

        try:
            payload = resp.json()
        except ValueError:
            return GenerationResult.failure(GenerationErrorKind.TRANSPORT, UNREADABLE_MESSAGE, backend)

        if isinstance(payload, dict) and "output" not in payload and isinstance(payload.get("error"), str):
            return GenerationResult.failure(GenerationErrorKind.BACKEND, payload["error"], backend)

        try:
            document = parse_document(payload)
        except DocumentError as e:
            log.warning("%s backend returned a malformed exam: %s", backend.value, e)
            return GenerationResult.failure(GenerationErrorKind.INVALID_DOCUMENT, str(e), backend)

        log.info("received exam with %d question(s)", len(document.questions))
        return GenerationResult(document=document, backend=backend)


def _structured_error(resp: httpx.Response) -> Optional[str]:
    """Return the backend's ``{"error": ...}`` message, if the body carries one."""
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return None
