from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel


class ChatTurn(BaseModel):
    role: Literal["system", "user", "assistant", "function"]
    content: str
    name: Optional[str] = None


class ChatRequest(BaseModel):
    message: str
    conversation: Optional[List[ChatTurn]] = None


class TutorRequest(BaseModel):
    task: Literal["assignment", "roadmap", "quiz"]
    topic: str
    duration: Optional[str] = None
    numQuestions: Optional[float] = None


class AnswerResponse(BaseModel):
    """Either a local tool result or the model's reply message."""

    answer: Union[str, Dict[str, Any]]


class TranscriptionResponse(BaseModel):
    transcription: str
