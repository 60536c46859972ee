"""Failure reporter.

When any stage between fetch and resolve raises, the reader gets the
exception message together with the last prompt that was built and the last
raw model text that came back, instead of an opaque error. No redaction is
applied; this is only acceptable because the service has no auth boundary.
"""

from __future__ import annotations

from dataclasses import dataclass

from starlette.responses import HTMLResponse, JSONResponse

from smartreader.errors import ModelRejectionError, ResponseParseError, SmartReaderError
from smartreader.renderer import render_failure_page

NO_STORE = {"Cache-Control": "no-store"}


@dataclass
class PipelineTrace:
    """Per-request record of what was sent to and received from the model."""

    prompt: str | None = None
    raw_response: str | None = None

    def absorb(self, exc: BaseException) -> None:
        """Pick up raw model text carried by model/parse errors."""
        if isinstance(exc, (ModelRejectionError, ResponseParseError)) and exc.raw_response:
            self.raw_response = exc.raw_response


def _status_for(exc: BaseException) -> int:
    if isinstance(exc, SmartReaderError):
        return exc.http_status
    return 500


def render_failure(exc: BaseException, trace: PipelineTrace) -> HTMLResponse:
    """Diagnostic HTML page. Carries no-store and is never put in the edge tier."""
    trace.absorb(exc)
    return HTMLResponse(
        render_failure_page(str(exc), trace.prompt, trace.raw_response),
        status_code=_status_for(exc),
        headers=NO_STORE,
    )


def failure_payload(exc: BaseException, trace: PipelineTrace) -> JSONResponse:
    """JSON variant of the diagnostic page for the summary route."""
    trace.absorb(exc)
    if isinstance(exc, SmartReaderError):
        body = exc.to_dict()
    else:
        body = {"error": {"code": "INTERNAL_ERROR", "message": str(exc)}}
    body["prompt"] = trace.prompt
    body["raw_response"] = trace.raw_response
    return JSONResponse(body, status_code=_status_for(exc), headers=NO_STORE)
