import logging
from pathlib import Path
from typing import Any, Optional

import openai
import requests
from openai import OpenAI

from .config import Settings
from .errors import (
    ConfigurationError,
    EmptyTranscript,
    TranscriptionError,
    UpstreamTimeout,
    upstream_error_message,
)

logger = logging.getLogger(__name__)

EMPTY_TRANSCRIPT_MESSAGE = "Transcription failed or empty response."
GENERIC_TRANSCRIPTION_MESSAGE = "Transcription failed."


def build_openai_client(settings: Settings) -> Optional[OpenAI]:
    if not settings.openai_api_key:
        return None
    return OpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout,
        max_retries=0,
    )


def ensure_transcription_ready(settings: Settings, client: Optional[Any]) -> None:
    if client is not None or settings.whisper_asr_url:
        return
    raise ConfigurationError(
        "Transcription is not available. Configure OPENAI_API_KEY or WHISPER_ASR_URL."
    )


def _payload_text(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    text_value = getattr(payload, "text", None)
    if text_value is not None:
        return str(text_value)
    return "" if payload is None else str(payload)


def _call_openai_transcription(client: Any, file_path: Path, settings: Settings) -> str:
    try:
        with file_path.open("rb") as audio_stream:
            response = client.audio.transcriptions.create(
                file=audio_stream,
                model=settings.transcription_model,
                language=settings.transcription_language,
                response_format="text",
            )
    except openai.APITimeoutError as exc:
        raise UpstreamTimeout(
            f"Transcription service did not answer within {settings.openai_timeout:g} seconds"
        ) from exc
    except openai.APIError as exc:
        raise TranscriptionError(upstream_error_message(exc, GENERIC_TRANSCRIPTION_MESSAGE)) from exc
    return _payload_text(response)


def _call_whisper_asr(file_path: Path, settings: Settings) -> str:
    endpoint = f"{settings.whisper_asr_url.rstrip('/')}/asr"
    params = {
        "output": "txt",
        "task": "transcribe",
        "language": settings.transcription_language,
        "encode": "true",
    }
    mime_type = "audio/mpeg" if file_path.suffix.lower() in {".mp3", ".mpeg"} else "application/octet-stream"
    try:
        with file_path.open("rb") as audio_stream:
            response = requests.post(
                endpoint,
                params=params,
                files={"audio_file": (file_path.name, audio_stream, mime_type)},
                timeout=settings.whisper_asr_timeout,
            )
    except requests.Timeout as exc:
        raise UpstreamTimeout(
            f"whisper-asr did not answer within {settings.whisper_asr_timeout:g} seconds"
        ) from exc
    except requests.RequestException as exc:
        raise TranscriptionError(upstream_error_message(exc, GENERIC_TRANSCRIPTION_MESSAGE)) from exc
    if response.status_code >= 400:
        raise TranscriptionError(
            f"whisper-asr answered with HTTP {response.status_code}: {response.text.strip()}"
        )
    return response.text


def transcribe_audio_file(file_path: Path, settings: Settings, client: Optional[Any]) -> str:
    """Send one audio file to the configured speech-to-text backend.

    Exactly one backend call is made: the OpenAI client when one is
    available, otherwise whisper-asr. A blank result is an error.
    """
    ensure_transcription_ready(settings, client)
    if client is not None:
        provider = "openai"
        text = _call_openai_transcription(client, file_path, settings)
    else:
        provider = "whisper-asr"
        text = _call_whisper_asr(file_path, settings)

    text = text.strip()
    if not text:
        raise EmptyTranscript(EMPTY_TRANSCRIPT_MESSAGE)
    logger.info("Transcribed %s via %s (%d characters)", file_path.name, provider, len(text))
    return text
