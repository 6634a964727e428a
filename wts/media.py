import logging
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from fastapi import UploadFile

from .config import Settings
from .errors import TranscodeError, UploadRejected, UpstreamTimeout

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 1 << 20
REJECTED_FILE_MESSAGE = "Only audio or video files are allowed!"


@dataclass(frozen=True)
class UploadDescriptor:
    filename: str
    content_type: str
    path: Path
    size: int

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video")


def file_extension(filename: str) -> str:
    return Path(filename).suffix.lower().lstrip(".")


def validate_upload(filename: Optional[str], content_type: Optional[str], settings: Settings) -> None:
    """Reject uploads outside the extension and MIME-type allow-lists."""
    extension = file_extension(filename or "")
    mime = (content_type or "").lower()
    if extension in settings.allowed_extensions and mime.startswith(settings.allowed_mime_prefixes):
        return
    logger.warning("Rejected file: %s (%s)", filename, content_type)
    raise UploadRejected(REJECTED_FILE_MESSAGE)


def ensure_upload_dir(settings: Settings) -> Path:
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    return settings.upload_dir


async def save_upload_file(upload: UploadFile, settings: Settings) -> UploadDescriptor:
    """Stream an upload into the scratch directory under a random name.

    The partial file is removed if writing fails or the upload is empty.
    """
    filename = upload.filename or "upload.bin"
    suffix = Path(filename).suffix.lower() or ".bin"
    directory = ensure_upload_dir(settings)
    size = 0
    with tempfile.NamedTemporaryFile(dir=directory, suffix=suffix, delete=False) as tmp:
        path = Path(tmp.name)
        try:
            while True:
                chunk = await upload.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                tmp.write(chunk)
                size += len(chunk)
        except BaseException:
            tmp.close()
            cleanup_path(path)
            raise
    await upload.close()
    if size == 0:
        cleanup_path(path)
        raise UploadRejected("Uploaded file is empty.")
    logger.info("Stored upload %s (%s, %d bytes) at %s", filename, upload.content_type, size, path)
    return UploadDescriptor(
        filename=filename,
        content_type=(upload.content_type or "").lower(),
        path=path,
        size=size,
    )


def cleanup_path(path: Optional[Path]) -> None:
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove scratch file %s: %s", path, exc)


def audio_encoding_args(settings: Settings) -> List[str]:
    return ["-vn", "-acodec", settings.audio_codec, "-b:a", settings.audio_bitrate]


def run_ffmpeg(source: Path, destination: Path, args: List[str], settings: Settings) -> None:
    command = [settings.ffmpeg_binary, "-y", "-i", str(source), *args, str(destination)]
    try:
        process = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            text=True,
            timeout=settings.ffmpeg_timeout,
        )
    except FileNotFoundError as exc:
        raise TranscodeError("ffmpeg is not installed or not reachable on this host") from exc
    except subprocess.TimeoutExpired as exc:
        raise UpstreamTimeout(
            f"ffmpeg did not finish within {settings.ffmpeg_timeout:g} seconds"
        ) from exc

    if process.returncode != 0:
        message = (process.stderr or process.stdout or "").strip()
        tail = message.splitlines()[-1] if message else "unknown ffmpeg error"
        raise TranscodeError(f"ffmpeg could not process the file: {tail}")


def needs_transcoding(descriptor: UploadDescriptor, settings: Settings) -> bool:
    return descriptor.is_video or settings.force_compression


def normalize_media(descriptor: UploadDescriptor, settings: Settings) -> Path:
    """Return the path of an audio file ready for transcription.

    Video (or any input when compression is forced) is re-encoded into a new
    scratch file and the original upload is deleted. Audio passes through.
    """
    if not needs_transcoding(descriptor, settings):
        return descriptor.path

    with tempfile.NamedTemporaryFile(
        dir=ensure_upload_dir(settings), suffix=".mp3", delete=False
    ) as tmp:
        output_path = Path(tmp.name)
    try:
        run_ffmpeg(descriptor.path, output_path, audio_encoding_args(settings), settings)
        if output_path.stat().st_size == 0:
            raise TranscodeError("ffmpeg produced no output. Check the uploaded file.")
    except OSError as exc:
        cleanup_path(output_path)
        raise TranscodeError("ffmpeg could not prepare the output file") from exc
    except Exception:
        cleanup_path(output_path)
        raise

    logger.info("Transcoded %s to %s", descriptor.path, output_path)
    cleanup_path(descriptor.path)
    return output_path
