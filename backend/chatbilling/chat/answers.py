"""Mocked answer generation.

Stands in for an LLM call: keyword-matched canned answers, a simulated
latency, and a rough token estimate of one token per four characters.
"""

import asyncio
import math
import random
import re

_KEYWORD_ANSWERS: list[tuple[tuple[str, ...], str]] = [
    (
        ("python", "py"),
        "Python is a high-level, general-purpose programming language known for its readable syntax. "
        "It supports multiple paradigms, ships with a large standard library, and is widely used for web "
        "services, automation, data analysis and machine learning.",
    ),
    (
        ("javascript", "js"),
        "JavaScript is a high-level, interpreted programming language that is one of the core technologies "
        "of the World Wide Web. It enables interactive web pages and is an essential part of web applications.",
    ),
    (
        ("database", "databases", "sql"),
        "A database is an organized collection of data stored and accessed electronically. SQL (Structured "
        "Query Language) is a domain-specific language used for managing and querying relational databases.",
    ),
    (
        ("api", "apis"),
        "An API (Application Programming Interface) is a set of protocols and tools for building software. "
        "APIs define how components interact; REST APIs are commonly used for web services, using HTTP "
        "methods like GET, POST, PUT and DELETE.",
    ),
    (
        ("hello", "hi"),
        "Hello! I'm an AI assistant. How can I help you today? Feel free to ask me any questions about "
        "programming, technology, or general topics.",
    ),
]


def _mentions(text: str, words: tuple[str, ...]) -> bool:
    """Whole-word match: ``py`` does not fire on "happy", nor ``hi`` on "this"."""
    alternatives = "|".join(re.escape(w) for w in words)
    return re.search(rf"\b(?:{alternatives})\b", text) is not None


def generate_mock_answer(question: str) -> str:
    lowered = question.lower()

    for keywords, answer in _KEYWORD_ANSWERS:
        if _mentions(lowered, keywords):
            return answer

    if _mentions(lowered, ("what is", "what are")):
        return (
            f'Based on your question "{question}", I can provide some general information. '
            "This is a mocked response; a real implementation would generate a contextually "
            "relevant and comprehensive answer."
        )

    if _mentions(lowered, ("how", "why")):
        return (
            f'That\'s an interesting question about "{question}". A real AI implementation would '
            "provide a detailed, step-by-step explanation. This mocked response demonstrates the "
            "chat functionality."
        )

    return (
        f'Thank you for your question: "{question}". This is a mocked AI response. In production '
        "the answer would be generated by a model that understands context and tailors the reply "
        "to your specific question."
    )


def estimate_tokens(question: str, answer: str) -> int:
    return math.ceil(len(answer) / 4) + math.ceil(len(question) / 4)


async def generate_answer(
    question: str,
    delay_ms: tuple[int, int] | None = None,
) -> tuple[str, int]:
    """Return ``(answer, tokens)``, optionally sleeping to mimic model latency."""
    if delay_ms is not None:
        low, high = delay_ms
        await asyncio.sleep(random.randint(low, max(low, high)) / 1000)

    answer = generate_mock_answer(question)
    return answer, estimate_tokens(question, answer)
