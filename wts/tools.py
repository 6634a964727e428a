"""Local tools offered to the chat model.

Every tool is a pure function producing text. The model only ever reaches
them through :func:`dispatch_tool_call`, which resolves names against a
closed :class:`ToolName` enumeration and the table offered in the request.
"""

import json
import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping

from .errors import ToolArgumentsError, UnknownToolError

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    GENERATE_ALGEBRA_PROBLEM = "generate_algebra_problem"
    GENERATE_ENGLISH_LESSON = "generate_english_lesson"
    CALCULATE_TIP = "calculate_tip"
    GENERATE_ASSIGNMENT = "generate_assignment"
    GENERATE_LEARNING_ROADMAP = "generate_learning_roadmap"
    GENERATE_QUIZ_QUESTIONS = "generate_quiz_questions"


ALGEBRA_PROBLEMS = {
    "easy": "Solve for x: x + 2 = 5",
    "medium": "Solve for x: 3x + 4 = 19",
    "hard": "Solve for x: 2(x - 3) + 4 = 10",
}

ENGLISH_LESSONS = {
    "grammar": (
        "Today, we will learn about English grammar basics, including sentence "
        "structure, parts of speech, and punctuation."
    ),
    "vocabulary": (
        "Let's expand your vocabulary. Here's a list of words along with their "
        "meanings and usage examples."
    ),
    "writing": (
        "In today's writing lesson, we will explore techniques for crafting clear, "
        "concise sentences and structuring paragraphs."
    ),
}

LEADING_NUMBER_PATTERN = re.compile(r"^\s*(\d+)")
MAX_ROADMAP_DAYS = 365
MAX_QUIZ_QUESTIONS = 100
CENT = Decimal("0.01")


def generate_algebra_problem(difficulty: str) -> str:
    return ALGEBRA_PROBLEMS.get(
        difficulty, "Difficulty not recognized. Please choose easy, medium, or hard."
    )


def generate_english_lesson(topic: str) -> str:
    """Return a short lesson introduction for grammar, vocabulary or writing."""
    return ENGLISH_LESSONS.get(
        topic.lower(), "Topic not recognized. Please choose grammar, vocabulary, or writing."
    )


def format_cents(value: float) -> str:
    """Two decimals, exact half-cents rounded away from zero (0.125 -> 0.13)."""
    try:
        return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # infinities and values beyond the decimal context precision
        return f"{value:.2f}"


def calculate_tip(bill: float, tip_percentage: float) -> str:
    tip = bill * (tip_percentage / 100)
    total = bill + tip
    return f"Tip: ${format_cents(tip)}. Total bill: ${format_cents(total)}."


def generate_assignment(topic: str) -> str:
    return (
        f'Assignment: Write a 500-word essay on "{topic}". '
        "Include real-world examples and references."
    )


def roadmap_days(duration: str) -> int:
    """Number of days in a duration such as ``"5 days"``; 0 when unparseable."""
    match = LEADING_NUMBER_PATTERN.match(duration or "")
    return int(match.group(1)) if match else 0


def generate_learning_roadmap(topic: str, duration: str) -> str:
    days = roadmap_days(duration)
    if days > MAX_ROADMAP_DAYS:
        raise ToolArgumentsError(f"Roadmaps are limited to {MAX_ROADMAP_DAYS} days, got {days}")
    lines = [f"Here is your {duration} roadmap for learning {topic}:", ""]
    for day in range(1, days + 1):
        lines.append(f"**Day {day}:** Learn about an important topic related to {topic}.")
    return "\n".join(lines) + "\n"


def generate_quiz_questions(topic: str, num_questions: int) -> str:
    if num_questions > MAX_QUIZ_QUESTIONS:
        raise ToolArgumentsError(
            f"Quizzes are limited to {MAX_QUIZ_QUESTIONS} questions, got {num_questions}"
        )
    lines = [f"Quiz on {topic}:", ""]
    for index in range(1, num_questions + 1):
        lines.append(f"Q{index}: What is an important concept related to {topic}?")
    logger.debug("Generated %d questions for %s", num_questions, topic)
    return "\n".join(lines) + "\n"


def _require(arguments: Mapping[str, Any], name: str, kind: type) -> Any:
    if name not in arguments or arguments[name] is None:
        raise ToolArgumentsError(f"Missing argument '{name}'")
    value = arguments[name]
    try:
        if kind is str:
            if not isinstance(value, str):
                raise TypeError(name)
            return value
        if isinstance(value, bool):
            raise TypeError(name)
        coerced = kind(value)
        if kind is int and isinstance(value, float) and not value.is_integer():
            raise ValueError(name)
        return coerced
    except (TypeError, ValueError) as exc:
        raise ToolArgumentsError(
            f"Argument '{name}' must be a {kind.__name__}, got {value!r}"
        ) from exc


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    description: str
    parameters: Dict[str, Any]
    handler: Callable[[Mapping[str, Any]], str]

    def declaration(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


def _object_schema(properties: Dict[str, Dict[str, str]], required: List[str]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


TOOL_SPECS: Dict[ToolName, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            ToolName.GENERATE_ALGEBRA_PROBLEM,
            "Creates an algebra problem for the requested difficulty level.",
            _object_schema(
                {
                    "difficulty": {
                        "type": "string",
                        "enum": sorted(ALGEBRA_PROBLEMS),
                        "description": "Difficulty of the problem: easy, medium or hard.",
                    }
                },
                ["difficulty"],
            ),
            lambda args: generate_algebra_problem(_require(args, "difficulty", str)),
        ),
        ToolSpec(
            ToolName.GENERATE_ENGLISH_LESSON,
            "Creates a short English lesson on grammar, vocabulary or writing.",
            _object_schema(
                {
                    "topic": {
                        "type": "string",
                        "description": "Lesson topic: grammar, vocabulary or writing.",
                    }
                },
                ["topic"],
            ),
            lambda args: generate_english_lesson(_require(args, "topic", str)),
        ),
        ToolSpec(
            ToolName.CALCULATE_TIP,
            "Calculates the tip and the total bill.",
            _object_schema(
                {
                    "bill": {"type": "number", "description": "Bill amount before the tip."},
                    "tipPercentage": {"type": "number", "description": "Tip percentage, e.g. 20."},
                },
                ["bill", "tipPercentage"],
            ),
            lambda args: calculate_tip(
                _require(args, "bill", float), _require(args, "tipPercentage", float)
            ),
        ),
        ToolSpec(
            ToolName.GENERATE_ASSIGNMENT,
            "Creates an assignment on a given topic.",
            _object_schema(
                {"topic": {"type": "string", "description": "The topic for the assignment."}},
                ["topic"],
            ),
            lambda args: generate_assignment(_require(args, "topic", str)),
        ),
        ToolSpec(
            ToolName.GENERATE_LEARNING_ROADMAP,
            "Creates a day-by-day roadmap for learning a topic.",
            _object_schema(
                {
                    "topic": {"type": "string", "description": "The topic/skill to learn."},
                    "duration": {"type": "string", "description": "Duration of the roadmap, e.g. '5 days'."},
                },
                ["topic", "duration"],
            ),
            lambda args: generate_learning_roadmap(
                _require(args, "topic", str), _require(args, "duration", str)
            ),
        ),
        ToolSpec(
            ToolName.GENERATE_QUIZ_QUESTIONS,
            "Generates a set of quiz questions on a given topic.",
            _object_schema(
                {
                    "topic": {"type": "string", "description": "The topic of the quiz."},
                    "numQuestions": {"type": "integer", "description": "Number of questions in the quiz."},
                },
                ["topic", "numQuestions"],
            ),
            lambda args: generate_quiz_questions(
                _require(args, "topic", str), _require(args, "numQuestions", int)
            ),
        ),
    )
}

CHAT_TOOLS = (
    ToolName.GENERATE_ALGEBRA_PROBLEM,
    ToolName.GENERATE_ENGLISH_LESSON,
    ToolName.CALCULATE_TIP,
)
TUTOR_TOOLS = (
    ToolName.GENERATE_ASSIGNMENT,
    ToolName.GENERATE_LEARNING_ROADMAP,
    ToolName.GENERATE_QUIZ_QUESTIONS,
)


def tool_declarations(names: Iterable[ToolName]) -> List[Dict[str, Any]]:
    return [TOOL_SPECS[name].declaration() for name in names]


def resolve_tool(name: str, offered: Iterable[ToolName]) -> ToolSpec:
    try:
        tool = ToolName(name)
    except ValueError:
        tool = None
    if tool is None or tool not in tuple(offered):
        raise UnknownToolError(f"The model requested an unknown tool: {name!r}")
    return TOOL_SPECS[tool]


def parse_tool_arguments(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        arguments = json.loads(raw or "{}")
    except (TypeError, ValueError) as exc:
        raise ToolArgumentsError(f"Tool arguments are not valid JSON: {raw!r}") from exc
    if not isinstance(arguments, dict):
        raise ToolArgumentsError("Tool arguments must be a JSON object")
    return arguments


def dispatch_tool_call(name: str, raw_arguments: Any, offered: Iterable[ToolName]) -> str:
    spec = resolve_tool(name, offered)
    arguments = parse_tool_arguments(raw_arguments)
    logger.info("Running tool %s with %s", spec.name.value, arguments)
    return spec.handler(arguments)
