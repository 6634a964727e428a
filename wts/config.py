import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

ALLOWED_EXTENSIONS = frozenset(
    {"mp3", "mp4", "wav", "m4a", "flac", "avi", "mov", "mkv", "flv"}
)
ALLOWED_MIME_PREFIXES = ("audio", "video")
TRUTHY_VALUES = {"1", "true", "yes", "on"}


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY_VALUES


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and injected into handlers."""

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_timeout: float = 120.0
    transcription_model: str = "whisper-1"
    transcription_language: str = "en"
    chat_model: str = "gpt-3.5-turbo"
    chat_complete_loop: bool = False
    whisper_asr_url: Optional[str] = None
    whisper_asr_timeout: float = 600.0
    upload_dir: Path = Path("uploads")
    allowed_extensions: FrozenSet[str] = field(default=ALLOWED_EXTENSIONS)
    allowed_mime_prefixes: tuple = ALLOWED_MIME_PREFIXES
    ffmpeg_binary: str = "ffmpeg"
    ffmpeg_timeout: float = 600.0
    audio_codec: str = "libmp3lame"
    audio_bitrate: str = "64k"
    force_compression: bool = False
    port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=_env_str("OPENAI_API_KEY"),
            openai_base_url=_env_str("OPENAI_BASE_URL"),
            openai_timeout=_env_float("OPENAI_TIMEOUT", cls.openai_timeout),
            transcription_model=_env_str("TRANSCRIPTION_MODEL", cls.transcription_model),
            transcription_language=_env_str(
                "TRANSCRIPTION_LANGUAGE", cls.transcription_language
            ),
            chat_model=_env_str("CHAT_MODEL", cls.chat_model),
            chat_complete_loop=_env_bool("CHAT_COMPLETE_LOOP"),
            whisper_asr_url=_env_str("WHISPER_ASR_URL"),
            whisper_asr_timeout=_env_float("WHISPER_ASR_TIMEOUT", cls.whisper_asr_timeout),
            upload_dir=Path(_env_str("UPLOAD_DIR", "uploads")),
            ffmpeg_binary=_env_str("FFMPEG_BINARY", cls.ffmpeg_binary),
            ffmpeg_timeout=_env_float("FFMPEG_TIMEOUT", cls.ffmpeg_timeout),
            audio_codec=_env_str("AUDIO_CODEC", cls.audio_codec),
            audio_bitrate=_env_str("AUDIO_BITRATE", cls.audio_bitrate),
            force_compression=_env_bool("FORCE_COMPRESSION"),
            port=_env_int("PORT", cls.port),
            log_level=_env_str("LOG_LEVEL", cls.log_level).upper(),
        )

    @property
    def transcription_backend(self) -> Optional[str]:
        if self.openai_api_key:
            return "openai"
        if self.whisper_asr_url:
            return "whisper-asr"
        return None
