from unittest.mock import AsyncMock

import pytest

from resume_assistant.app.agent.intents import (
    INTENT_LABELS,
    INTENT_METADATA,
    Intent,
    detect_intent,
    detect_intent_regex,
)


@pytest.mark.parametrize(
    "command, expected",
    [
        ("add skills: Go, Rust", Intent.ADD_SKILLS),
        ("please rewrite my summary", Intent.REWRITE),
        ("change the font to Georgia", Intent.DESIGN),
        ("use a two column layout", Intent.LAYOUT),
        ("optimize for this posting", Intent.ATS_OPTIMIZE),
        ("export as pdf", Intent.EXPORT),
        ("undo", Intent.UNDO),
        ("redo", Intent.REDO),
        ("compare versions", Intent.COMPARE),
        ("save to history", Intent.SAVE_HISTORY),
    ],
)
def test_detect_intent_regex(command, expected):
    """Test each pattern."""
    assert detect_intent_regex(command) == expected


def test_detect_intent_regex_first_match_wins():
    """Test that pattern order decides between several matches."""
    assert detect_intent_regex("add skills and change the font") == Intent.ADD_SKILLS


def test_detect_intent_regex_no_match():
    assert detect_intent_regex("hello") is None
    assert detect_intent_regex("") is None


def test_every_intent_has_metadata():
    """Test the label list and metadata cover every intent."""
    assert set(INTENT_METADATA) == set(Intent)
    assert INTENT_LABELS[0] == "rewrite"
    assert INTENT_METADATA[Intent.SAVE_HISTORY].source == "automation"


@pytest.mark.asyncio
async def test_detect_intent_without_classifier_defaults_to_rewrite():
    assert await detect_intent("hello") == Intent.REWRITE


@pytest.mark.asyncio
async def test_detect_intent_pattern_skips_classifier():
    """Test that a pattern match never calls the classifier."""
    classifier = AsyncMock(return_value="export")
    assert await detect_intent("undo", classifier) == Intent.UNDO
    classifier.assert_not_awaited()


@pytest.mark.asyncio
async def test_detect_intent_uses_classifier_label():
    """Test that the classifier decides when no pattern matches."""
    classifier = AsyncMock(return_value="design")
    assert await detect_intent("make it pop", classifier) == Intent.DESIGN
    classifier.assert_awaited_once_with("make it pop", INTENT_LABELS)


@pytest.mark.asyncio
async def test_detect_intent_ignores_unknown_label():
    classifier = AsyncMock(return_value="dance")
    assert await detect_intent("make it pop", classifier) == Intent.REWRITE


@pytest.mark.asyncio
async def test_detect_intent_classifier_failure_defaults():
    """Test that a failing classifier does not propagate."""
    classifier = AsyncMock(side_effect=RuntimeError("llm down"))
    assert await detect_intent("make it pop", classifier) == Intent.REWRITE
