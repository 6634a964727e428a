"""Chat-completion round trips with local tool dispatch."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import openai

from .config import Settings
from .errors import ChatCompletionError, ConfigurationError, UpstreamTimeout, upstream_error_message
from .schemas import ChatTurn, TutorRequest
from .tools import ToolName, dispatch_tool_call, tool_declarations

logger = logging.getLogger(__name__)

UNKNOWN_FUNCTION_NAME = "unknown"
TOOL_RESULT_SEPARATOR = "\n\n"

Message = Dict[str, Any]
Answer = Union[str, Dict[str, Any]]


def build_messages(message: str, conversation: Optional[Sequence[ChatTurn]] = None) -> List[Message]:
    """Prior turns in order, followed by the new user message."""
    messages: List[Message] = []
    for turn in conversation or ():
        if turn.role == "function":
            messages.append(
                {
                    "role": "function",
                    "name": turn.name or UNKNOWN_FUNCTION_NAME,
                    "content": turn.content,
                }
            )
        else:
            messages.append({"role": turn.role, "content": turn.content})
    messages.append({"role": "user", "content": message})
    return messages


def format_count(value: float) -> str:
    """Whole numbers without a trailing ``.0``: 3.0 -> "3", 2.5 -> "2.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_tutor_prompt(request: TutorRequest) -> str:
    prompt = f"I need a {request.task} on {request.topic}"
    if request.duration:
        prompt += f" over {request.duration}"
    if request.numQuestions is not None:
        prompt += f" with {format_count(request.numQuestions)} questions"
    return prompt


def require_chat_client(client: Optional[Any]) -> Any:
    if client is None:
        raise ConfigurationError("Chat is not available. Configure OPENAI_API_KEY.")
    return client


def reply_to_dict(message: Any) -> Dict[str, Any]:
    return {"role": getattr(message, "role", "assistant"), "content": message.content}


def assistant_tool_turn(message: Any) -> Message:
    return {
        "role": "assistant",
        "content": message.content,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {
                    "name": call.function.name,
                    "arguments": call.function.arguments,
                },
            }
            for call in message.tool_calls
        ],
    }


def create_completion(client: Any, settings: Settings, messages: List[Message], **kwargs: Any) -> Any:
    try:
        completion = client.chat.completions.create(
            model=settings.chat_model,
            messages=messages,
            **kwargs,
        )
    except openai.APITimeoutError as exc:
        raise UpstreamTimeout(
            f"Chat model did not answer within {settings.openai_timeout:g} seconds"
        ) from exc
    except openai.APIError as exc:
        raise ChatCompletionError(upstream_error_message(exc, "Chat completion failed.")) from exc
    if not completion.choices:
        raise ChatCompletionError("Chat model returned no choices.")
    return completion.choices[0].message


def run_tool_conversation(
    client: Any,
    settings: Settings,
    messages: List[Message],
    tools: Iterable[ToolName],
    complete_loop: bool,
) -> Answer:
    """Ask the model, run any requested tools, and produce the answer.

    Without ``complete_loop`` the local tool results are returned as-is.
    With it, the tool results are sent back and the model's final reply is
    returned instead.
    """
    offered = tuple(tools)
    history = list(messages)
    reply = create_completion(
        client,
        settings,
        history,
        tools=tool_declarations(offered),
        tool_choice="auto",
    )
    tool_calls = getattr(reply, "tool_calls", None)
    if not tool_calls:
        logger.info("Model answered directly")
        return reply_to_dict(reply)

    history.append(assistant_tool_turn(reply))
    results = []
    for call in tool_calls:
        result = dispatch_tool_call(call.function.name, call.function.arguments, offered)
        results.append(result)
        history.append({"role": "tool", "tool_call_id": call.id, "content": result})

    if not complete_loop:
        return TOOL_RESULT_SEPARATOR.join(results)

    logger.info("Sending %d tool result(s) back to the model", len(results))
    final_reply = create_completion(client, settings, history)
    return reply_to_dict(final_reply)
