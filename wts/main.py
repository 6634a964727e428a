import logging
import os
import shutil
from contextlib import ExitStack
from typing import Any, Dict, Optional

import certifi
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

# Some slim containers ship without OS certificates; make every HTTP client
# rely on the certifi bundle instead.
CERT_BUNDLE = certifi.where()
os.environ["SSL_CERT_FILE"] = CERT_BUNDLE
os.environ["REQUESTS_CA_BUNDLE"] = CERT_BUNDLE

load_dotenv()

from .chat import build_messages, build_tutor_prompt, require_chat_client, run_tool_conversation  # noqa: E402
from .config import Settings  # noqa: E402
from .errors import UploadRejected, register_error_handlers  # noqa: E402
from .media import cleanup_path, normalize_media, save_upload_file, validate_upload  # noqa: E402
from .schemas import AnswerResponse, ChatRequest, TranscriptionResponse, TutorRequest  # noqa: E402
from .tools import CHAT_TOOLS, TUTOR_TOOLS  # noqa: E402
from .transcription import build_openai_client, transcribe_audio_file  # noqa: E402
from .versioning import get_version  # noqa: E402

APP_TITLE = "WTS · Whisper Tutor Service"
WTS_VERSION = get_version("wts")
WELCOME_MESSAGE = "Welcome to Whisper Transcription API!"
NO_FILE_MESSAGE = "No file uploaded."
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_openai_client(request: Request) -> Optional[Any]:
    """OpenAI client from app state, built on first use; None without an API key."""
    state = request.app.state
    if state.openai_client is None:
        state.openai_client = build_openai_client(state.settings)
    return state.openai_client


async def transcribe_upload(upload: Optional[UploadFile], settings: Settings, client: Optional[Any]) -> Dict[str, str]:
    """Receive, normalise and transcribe one upload.

    Every scratch file is registered with the exit stack as soon as it
    exists, so nothing outlives the request whatever fails.
    """
    if upload is None or not upload.filename:
        raise UploadRejected(NO_FILE_MESSAGE)
    validate_upload(upload.filename, upload.content_type, settings)

    with ExitStack() as scratch:
        descriptor = await save_upload_file(upload, settings)
        scratch.callback(cleanup_path, descriptor.path)

        audio_path = await run_in_threadpool(normalize_media, descriptor, settings)
        if audio_path != descriptor.path:
            scratch.callback(cleanup_path, audio_path)

        transcription = await run_in_threadpool(transcribe_audio_file, audio_path, settings, client)
    return {"transcription": transcription}


def create_app(settings: Optional[Settings] = None, openai_client: Optional[Any] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    app = FastAPI(title=APP_TITLE, version=WTS_VERSION or "0.0.0")
    app.state.settings = settings
    app.state.openai_client = openai_client
    register_error_handlers(app)

    if shutil.which(settings.ffmpeg_binary) is None:
        logger.warning("ffmpeg binary %r not found; video uploads will fail", settings.ffmpeg_binary)
    if openai_client is None and settings.transcription_backend is None:
        logger.warning("Neither OPENAI_API_KEY nor WHISPER_ASR_URL is set; transcription is disabled")

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return WELCOME_MESSAGE

    @app.get("/api/health")
    async def health() -> Dict[str, str]:
        payload: Dict[str, str] = {"status": "ok"}
        if WTS_VERSION:
            payload["version"] = WTS_VERSION
        return payload

    @app.post("/transcribe", response_model=TranscriptionResponse)
    async def transcribe(
        audio_file: Optional[UploadFile] = File(None, alias="audioFile"),
        settings: Settings = Depends(get_settings),
        client: Optional[Any] = Depends(get_openai_client),
    ) -> Dict[str, str]:
        return await transcribe_upload(audio_file, settings, client)

    @app.post("/create-with-media", response_model=TranscriptionResponse)
    async def create_with_media(
        media_file: Optional[UploadFile] = File(None, alias="mediaFile"),
        settings: Settings = Depends(get_settings),
        client: Optional[Any] = Depends(get_openai_client),
    ) -> Dict[str, str]:
        return await transcribe_upload(media_file, settings, client)

    @app.post("/api/chat", response_model=AnswerResponse)
    async def chat(
        payload: ChatRequest,
        settings: Settings = Depends(get_settings),
        client: Optional[Any] = Depends(get_openai_client),
    ) -> Dict[str, Any]:
        chat_client = require_chat_client(client)
        messages = build_messages(payload.message, payload.conversation)
        answer = await run_in_threadpool(
            run_tool_conversation,
            chat_client,
            settings,
            messages,
            CHAT_TOOLS,
            settings.chat_complete_loop,
        )
        return {"answer": answer}

    @app.post("/api/tutor", response_model=AnswerResponse)
    async def tutor(
        payload: TutorRequest,
        settings: Settings = Depends(get_settings),
        client: Optional[Any] = Depends(get_openai_client),
    ) -> Dict[str, Any]:
        chat_client = require_chat_client(client)
        logger.info("Tutor request: %s", payload.model_dump(exclude_none=True))
        messages = build_messages(build_tutor_prompt(payload))
        answer = await run_in_threadpool(
            run_tool_conversation,
            chat_client,
            settings,
            messages,
            TUTOR_TOOLS,
            True,
        )
        return {"answer": answer}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
