import pytest

from wts.errors import ToolArgumentsError, UnknownToolError
from wts.tools import (
    CHAT_TOOLS,
    MAX_QUIZ_QUESTIONS,
    MAX_ROADMAP_DAYS,
    TOOL_SPECS,
    TUTOR_TOOLS,
    ToolName,
    calculate_tip,
    dispatch_tool_call,
    generate_algebra_problem,
    generate_assignment,
    generate_english_lesson,
    generate_learning_roadmap,
    generate_quiz_questions,
    roadmap_days,
    tool_declarations,
)


@pytest.mark.parametrize(
    "difficulty, expected",
    [
        ("easy", "Solve for x: x + 2 = 5"),
        ("medium", "Solve for x: 3x + 4 = 19"),
        ("hard", "Solve for x: 2(x - 3) + 4 = 10"),
        ("impossible", "Difficulty not recognized. Please choose easy, medium, or hard."),
    ],
)
def test_generate_algebra_problem(difficulty, expected):
    assert generate_algebra_problem(difficulty) == expected


def test_generate_english_lesson_is_case_insensitive():
    assert generate_english_lesson("Grammar").startswith("Today, we will learn about English grammar")
    assert generate_english_lesson("WRITING").startswith("In today's writing lesson")
    assert generate_english_lesson("history") == (
        "Topic not recognized. Please choose grammar, vocabulary, or writing."
    )


def test_calculate_tip():
    assert calculate_tip(100, 20) == "Tip: $20.00. Total bill: $120.00."
    assert calculate_tip(50, 15) == "Tip: $7.50. Total bill: $57.50."
    assert calculate_tip(0.5, 25) == "Tip: $0.13. Total bill: $0.63."


def test_generate_assignment():
    assert generate_assignment("Climate") == (
        'Assignment: Write a 500-word essay on "Climate". '
        "Include real-world examples and references."
    )


def test_generate_learning_roadmap_numbers_each_day():
    roadmap = generate_learning_roadmap("Python", "5 days")
    lines = roadmap.splitlines()
    assert lines[0] == "Here is your 5 days roadmap for learning Python:"
    assert lines[1] == ""
    day_lines = [line for line in lines if line.startswith("**Day")]
    assert day_lines == [
        f"**Day {day}:** Learn about an important topic related to Python." for day in range(1, 6)
    ]


@pytest.mark.parametrize("duration, days", [("5 days", 5), ("12", 12), ("a week", 0), ("", 0)])
def test_roadmap_days(duration, days):
    assert roadmap_days(duration) == days


def test_generate_quiz_questions():
    quiz = generate_quiz_questions("Photosynthesis", 3)
    lines = quiz.splitlines()
    assert lines[0] == "Quiz on Photosynthesis:"
    questions = lines[2:]
    assert questions == [
        f"Q{n}: What is an important concept related to Photosynthesis?" for n in (1, 2, 3)
    ]


def test_declarations_match_handler_arguments():
    declared = {item["function"]["name"]: item["function"]["parameters"] for item in tool_declarations(ToolName)}
    assert declared["calculate_tip"]["required"] == ["bill", "tipPercentage"]
    assert declared["generate_english_lesson"]["required"] == ["topic"]
    assert declared["generate_learning_roadmap"]["required"] == ["topic", "duration"]
    for parameters in declared.values():
        assert set(parameters["required"]) <= set(parameters["properties"])
    assert set(TOOL_SPECS) == set(ToolName)


def test_dispatch_tool_call_runs_the_handler():
    result = dispatch_tool_call("calculate_tip", '{"bill": 100, "tipPercentage": 20}', CHAT_TOOLS)
    assert result == "Tip: $20.00. Total bill: $120.00."


def test_dispatch_english_lesson_takes_topic_only():
    # Only the documented "topic" argument selects the lesson; stray keys are ignored.
    result = dispatch_tool_call(
        "generate_english_lesson", '{"topic": "vocabulary", "duration": "5 days"}', CHAT_TOOLS
    )
    assert result.startswith("Let's expand your vocabulary.")


def test_dispatch_rejects_unknown_tool():
    with pytest.raises(UnknownToolError):
        dispatch_tool_call("generate_english_lesson(", "{}", CHAT_TOOLS)


def test_dispatch_rejects_tool_not_offered():
    with pytest.raises(UnknownToolError):
        dispatch_tool_call("generate_quiz_questions", '{"topic": "x", "numQuestions": 2}', CHAT_TOOLS)
    assert dispatch_tool_call(
        "generate_quiz_questions", '{"topic": "x", "numQuestions": 2}', TUTOR_TOOLS
    ).count("What is an important concept") == 2


@pytest.mark.parametrize(
    "arguments",
    ["not json", "[1, 2]", '{"bill": 100}', '{"bill": "lots", "tipPercentage": 20}', '{"bill": true, "tipPercentage": 5}'],
)
def test_dispatch_rejects_bad_arguments(arguments):
    with pytest.raises(ToolArgumentsError):
        dispatch_tool_call("calculate_tip", arguments, CHAT_TOOLS)


def test_quiz_rejects_fractional_question_count():
    with pytest.raises(ToolArgumentsError):
        dispatch_tool_call("generate_quiz_questions", '{"topic": "x", "numQuestions": 2.5}', TUTOR_TOOLS)


def test_roadmap_length_is_capped():
    assert generate_learning_roadmap("Go", f"{MAX_ROADMAP_DAYS} days").count("**Day") == MAX_ROADMAP_DAYS
    with pytest.raises(ToolArgumentsError):
        generate_learning_roadmap("Go", "1000000000 days")


def test_quiz_length_is_capped():
    with pytest.raises(ToolArgumentsError):
        dispatch_tool_call(
            "generate_quiz_questions", '{"topic": "x", "numQuestions": 1000000000}', TUTOR_TOOLS
        )
    quiz = generate_quiz_questions("x", MAX_QUIZ_QUESTIONS)
    assert quiz.count("What is an important concept") == MAX_QUIZ_QUESTIONS
