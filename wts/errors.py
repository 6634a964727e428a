import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ServiceError(RuntimeError):
    """Error whose message is safe to return to the client."""

    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UploadRejected(ServiceError):
    status_code = 400
    kind = "invalid_upload"


class InvalidRequest(ServiceError):
    status_code = 400
    kind = "invalid_request"


class ConfigurationError(ServiceError):
    kind = "configuration_error"


class TranscodeError(ServiceError):
    kind = "transcode_failed"


class TranscriptionError(ServiceError):
    kind = "transcription_failed"


class EmptyTranscript(TranscriptionError):
    kind = "empty_transcript"


class ChatCompletionError(ServiceError):
    kind = "chat_failed"


class UnknownToolError(ServiceError):
    kind = "unknown_tool"


class ToolArgumentsError(ServiceError):
    kind = "invalid_tool_arguments"


class UpstreamTimeout(ServiceError):
    status_code = 504
    kind = "upstream_timeout"


def upstream_error_message(exc: Exception, fallback: str) -> str:
    """Prefer the message reported by the upstream service, if any."""
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        detail = body.get("error", body)
        if isinstance(detail, dict) and detail.get("message"):
            return str(detail["message"])
    message = getattr(exc, "message", None) or str(exc)
    return message.strip() or fallback


def error_payload(message: str, kind: str) -> Dict[str, str]:
    return {"error": message, "kind": kind}


def _describe_validation_errors(errors: List[Dict[str, Any]]) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request body."


async def _handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code < 500:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    else:
        logger.error("%s %s failed (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc.message, exc.kind))


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _describe_validation_errors(list(exc.errors()))
    logger.warning("%s %s invalid body: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content=error_payload(message, InvalidRequest.kind))


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning("%s %s answered %d: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(str(exc.detail), "http_error"),
        headers=getattr(exc, "headers", None),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_payload("Something went wrong.", ServiceError.kind),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _handle_service_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected_error)
