"""Fakes standing in for the OpenAI client and ffmpeg."""

from __future__ import annotations

import copy
import json
import subprocess
from pathlib import Path
from types import SimpleNamespace
from typing import Any, List, Optional


def make_tool_call(name: str, arguments: Any, call_id: str = "call_1") -> SimpleNamespace:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=raw),
    )


def make_completion(content: Optional[str] = None, tool_calls: Optional[list] = None) -> SimpleNamespace:
    message = SimpleNamespace(role="assistant", content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeTranscriptions:
    def __init__(self, result: Any = "hello world", error: Optional[Exception] = None) -> None:
        self.result = result
        self.error = error
        self.calls: List[dict] = []

    def create(self, **kwargs: Any) -> Any:
        stream = kwargs["file"]
        self.calls.append({**kwargs, "file": stream.name, "content": stream.read()})
        if self.error is not None:
            raise self.error
        return self.result


class FakeCompletions:
    def __init__(self) -> None:
        self.responses: List[Any] = []
        self.calls: List[dict] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(copy.deepcopy(kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeOpenAI:
    def __init__(self) -> None:
        self.audio = SimpleNamespace(transcriptions=FakeTranscriptions())
        self.chat = SimpleNamespace(completions=FakeCompletions())

    @property
    def transcriptions(self) -> FakeTranscriptions:
        return self.audio.transcriptions

    @property
    def completions(self) -> FakeCompletions:
        return self.chat.completions


class FakeFfmpeg:
    """Replacement for ``subprocess.run`` that writes a small mp3 to the output path."""

    def __init__(self, returncode: int = 0, stderr: str = "", output: bytes = b"ID3fake-mp3") -> None:
        self.returncode = returncode
        self.stderr = stderr
        self.output = output
        self.commands: List[List[str]] = []

    def __call__(self, command: List[str], **kwargs: Any) -> subprocess.CompletedProcess:
        self.commands.append(list(command))
        if self.returncode == 0:
            Path(command[-1]).write_bytes(self.output)
        return subprocess.CompletedProcess(command, self.returncode, stdout="", stderr=self.stderr)


def scratch_files(directory: Path) -> List[Path]:
    if not directory.exists():
        return []
    return sorted(directory.iterdir())
