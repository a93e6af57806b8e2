import pytest

from resume_assistant.app.ats.languages import (
    bucketize,
    detect_language,
    language_breakdown,
    language_tokens,
    token_language,
)


@pytest.mark.parametrize(
    "token, expected",
    [("שלום", "he"), ("مرحبا", "ar"), ("python", "en"), ("c++", "en"), ("привет", "other")],
)
def test_token_language(token, expected):
    """Test script buckets."""
    assert token_language(token) == expected


def test_language_tokens_and_buckets():
    """Test tokenization and grouping by script."""
    assert language_tokens("Python, C++ и Go!") == ["python", "c++", "go"]
    assert language_tokens(None) == []
    assert bucketize("python שלום python") == {"en": {"python"}, "he": {"שלום"}}


def test_language_breakdown():
    """Test per-language overlap and gaps."""
    breakdown = language_breakdown("python sql", "python docker")
    assert breakdown["en"].score == 0.5
    assert breakdown["en"].gaps == ["docker"]
    assert breakdown["en"].resume == ["python", "sql"]


def test_language_breakdown_bucket_only_in_resume():
    """Test that a bucket absent from the job scores 0."""
    breakdown = language_breakdown("python שלום", "python")
    assert breakdown["he"].score == 0
    assert breakdown["he"].job == []


def test_detect_language_defaults():
    """Test empty and letterless text."""
    detection = detect_language("")
    assert (detection.lang, detection.confidence, detection.rtl) == ("en", 0, False)
    assert detect_language("12345 678").confidence == 0.2


def test_detect_language_english_and_hebrew():
    """Test a confident single-script detection."""
    english = detect_language("Experienced backend engineer")
    assert english.lang == "en"
    assert english.confidence == 0.92
    assert not english.rtl

    hebrew = detect_language("שלום עולם זה טקסט")
    assert hebrew.lang == "he"
    assert hebrew.rtl


def test_detect_language_mixed():
    """Test two close scripts produce a mixed result."""
    detection = detect_language("hello שלום")
    assert detection.lang == "mixed"
    assert detection.rtl
    assert 0.4 <= detection.confidence <= 0.65


def test_detect_language_short_text_is_capped():
    """Test that very short text has limited confidence."""
    assert detect_language("Hi").confidence <= 0.6
