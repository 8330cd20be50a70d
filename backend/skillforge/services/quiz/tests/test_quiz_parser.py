import json

from skillforge.services.quiz.parser import (
    parse_questions,
    parse_text_questions,
    strip_code_fences,
)


def make_items(count):
    return [
        {
            "question": f"Question {i}?",
            "options": ["one", "two", "three", "four"],
            "answer": i % 4,
        }
        for i in range(count)
    ]


def test_json_array_parsed():
    questions = parse_questions(json.dumps(make_items(10)))

    assert len(questions) == 10
    assert questions[3].answer == 3
    assert questions[0].options == ["one", "two", "three", "four"]


def test_code_fences_removed():
    raw = "```json\n" + json.dumps(make_items(2)) + "\n```"
    assert strip_code_fences(raw).startswith("[")
    assert len(parse_questions(raw)) == 2


def test_answer_index_alias_accepted():
    item = {"question": "Q?", "options": ["a", "b", "c", "d"], "answerIndex": 1}
    assert parse_questions(json.dumps([item]))[0].answer == 1


def test_invalid_items_dropped(caplog):
    items = make_items(2) + [
        {"question": "Three options?", "options": ["a", "b", "c"], "answer": 0},
        {"question": "Bad answer?", "options": ["a", "b", "c", "d"], "answer": 4},
        {"question": "", "options": ["a", "b", "c", "d"], "answer": 0},
        "not an object",
    ]

    assert len(parse_questions(json.dumps(items))) == 2
    assert "Skipping" in caplog.text


def test_text_layout_fallback():
    raw = """Here is your quiz:
1. What is 2 + 2?
A. 3
B. 4
C. 5
D. 22
Answer: B
2. Which is a vowel?
a. x
b. y
c. e
d. z
Answer - c
"""
    questions = parse_questions(raw)

    assert [q.answer for q in questions] == [1, 2]
    assert questions[0].question == "What is 2 + 2?"
    assert questions[1].options == ["x", "y", "e", "z"]


def test_text_block_without_answer_is_skipped():
    raw = "1. Question?\nA. a\nB. b\nC. c\nD. d\nNo answer here"
    assert parse_text_questions(raw) == []


def test_non_array_json_yields_nothing():
    assert parse_questions(json.dumps({"questions": make_items(10)})) == []
