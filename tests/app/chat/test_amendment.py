from unittest.mock import MagicMock

import pytest

from resume_assistant.app.chat.amendment import (
    amend_document,
    detect_fabrication,
    intent_to_operations,
)
from resume_assistant.app.chat.models import ModificationIntent
from resume_assistant.app.resume.modification import ValidationError


def test_add_senior_to_legacy_experience_key():
    """Test the title prefix against a document using the legacy section name."""
    document = {"experience": [{"title": "Software Engineer"}]}
    result = amend_document(document, "add Senior to my job title")
    assert result.applied
    assert result.document["experience"][0]["title"] == "Senior Software Engineer"
    assert result.operations[0].field_path == "experience[0].title"
    assert document["experience"][0]["title"] == "Software Engineer"


def test_change_email(sample_document):
    """Test a contact replacement end to end."""
    result = amend_document(sample_document, "change email to a@b.com")
    assert result.applied
    assert result.intent.confidence == 0.95
    assert result.document["contact"]["email"] == "a@b.com"


def test_non_modification_leaves_document(sample_document):
    """Test that a message without an edit changes nothing."""
    result = amend_document(sample_document, "hello there")
    assert not result.applied
    assert result.document == sample_document
    assert result.warnings == ["The message does not ask for a change."]


def test_clarification_is_returned(sample_document):
    """Test that an ambiguous message returns its question."""
    result = amend_document(sample_document, "change my emial")
    assert not result.applied
    assert result.clarification_question == "Did you want to change your email address?"


def test_duplicate_skill_only_warns(sample_document):
    """Test that a skipped intent contributes its warnings."""
    result = amend_document(sample_document, "add Python to skills")
    assert not result.applied
    assert result.warnings == ["Python already exists in skills"]
    assert result.clarification_question is None


def test_remove_named_skill(sample_document):
    """Test that a named skill is removed by index."""
    result = amend_document(sample_document, "remove SQL from skills")
    assert result.applied
    assert result.document["skills"]["technical"] == ["Python"]
    assert result.operations[0].field_path == "skills.technical[1]"


def test_compound_instruction_applies_both(sample_document):
    """Test that both sub-intents are applied in order."""
    result = amend_document(
        sample_document,
        "change my title to Staff Engineer and add mentoring to my summary",
    )
    assert len(result.operations) == 2
    assert result.document["experiences"][0]["title"] == "Staff Engineer"
    assert result.document["summary"].endswith(" mentoring")


def test_metric_from_message_is_allowed(sample_document):
    """Test that metrics the user typed can be written."""
    result = amend_document(sample_document, "add achievement: Increased revenue by 30%")
    assert result.applied
    assert result.document["experiences"][0]["achievements"][-1] == "Increased revenue by 30%"


def test_unsupported_metric_is_refused(sample_document):
    """Test that a parser inventing a number cannot write it."""
    parser = MagicMock()
    parser.parse.return_value = ModificationIntent(
        is_modification=True,
        operation="replace",
        field_path="summary",
        new_value="Grew sales by 50% in one year.",
        confidence=0.9,
    )
    result = amend_document(sample_document, "make my summary stronger", parser=parser)
    assert not result.applied
    assert result.document == sample_document
    assert result.warnings[0].startswith("Skipped change to summary: 50%")


def test_invalid_operation_raises(sample_document):
    """Test that an edit that cannot be applied propagates ValidationError."""
    document = {"experiences": [{"title": "Dev", "achievements": "not a list"}]}
    with pytest.raises(ValidationError):
        amend_document(document, "add achievement: Shipped the billing system")


def test_empty_message_raises(sample_document):
    """Test that an empty message is rejected."""
    with pytest.raises(ValueError):
        amend_document(sample_document, "")


def test_detect_fabrication(sample_document):
    """Test metric token checks against the message and the document."""
    assert detect_fabrication("Cut latency by 40%", sample_document, "") == []
    assert detect_fabrication(["Saved $2M", "Led team"], {}, "") == ["$2m"]
    assert detect_fabrication("Scaled 10x", {}, "we scaled 10x") == []
    assert detect_fabrication("Ranked #1", {}, "") == ["#1"]
    assert detect_fabrication("Grew the team to 40 engineers", {}, "") == ["40engineers"]
    assert detect_fabrication("Served 1,200+ customers", {}, "") == ["1,200+customers"]
    assert detect_fabrication("Led 40 engineers", {}, "I led 40 engineers") == []
    assert detect_fabrication("No numbers here", {}, "") == []
    assert detect_fabrication(5, {}, "") == []


def test_intent_to_operations_variants(sample_document):
    """Test value lists, missing targets and missing values."""
    ops, warnings = intent_to_operations(
        ModificationIntent(
            is_modification=True,
            operation="append",
            field_path="skills.technical",
            values=["Go", "Rust"],
        ),
        sample_document,
    )
    assert [op.new_value for op in ops] == ["Go", "Rust"]
    assert warnings == []

    ops, warnings = intent_to_operations(
        ModificationIntent(
            is_modification=True,
            operation="remove",
            field_path="skills.technical",
            target_value="Mentoring",
        ),
        sample_document,
    )
    assert ops[0].field_path == "skills.soft[0]"

    ops, warnings = intent_to_operations(
        ModificationIntent(
            is_modification=True,
            operation="remove",
            field_path="skills.technical",
            target_value="Cobol",
        ),
        sample_document,
    )
    assert ops == []
    assert warnings == ["'Cobol' was not found in skills.technical"]

    ops, warnings = intent_to_operations(
        ModificationIntent(is_modification=True, operation="replace", field_path="summary"),
        sample_document,
    )
    assert ops == []
    assert warnings == ["No value given for summary"]


def test_unsupported_headcount_is_refused(sample_document):
    """Test that an invented count of people is refused like any other metric."""
    parser = MagicMock()
    parser.parse.return_value = ModificationIntent(
        is_modification=True,
        operation="append",
        field_path="experiences[latest].achievements",
        new_value="Grew the team to 40 engineers",
        confidence=0.9,
    )
    result = amend_document(sample_document, "mention that I grew the team", parser=parser)
    assert not result.applied
    assert result.document == sample_document
    assert "40engineers" in result.warnings[0]
