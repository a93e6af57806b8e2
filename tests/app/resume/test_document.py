from resume_assistant.app.resume.document import (
    default_document,
    ensure_document,
    get_experiences,
    resolve_section_alias,
    section_key,
)


def test_default_document_shape():
    """Test the minimal empty document."""
    document = default_document()
    assert document["summary"] == ""
    assert document["skills"] == {"technical": [], "soft": []}
    assert document["experiences"] == []
    assert document["education"] == []


def test_ensure_document_copies_or_defaults(sample_document):
    """Test ensure_document for a populated dict and for unusable input."""
    copied = ensure_document(sample_document)
    assert copied == sample_document
    assert copied is not sample_document

    assert ensure_document({}) == default_document()
    assert ensure_document(None) == default_document()
    assert ensure_document(["not", "a", "dict"]) == default_document()


def test_section_key_prefers_canonical_then_alias():
    """Test section key lookup with and without legacy keys."""
    assert section_key({"experiences": []}, "experiences") == "experiences"
    assert section_key({"experience": []}, "experiences") == "experience"
    assert section_key({"work_experience": []}, "experiences") == "work_experience"
    assert section_key({}, "experiences") == "experiences"
    assert section_key(None, "experiences") == "experiences"


def test_get_experiences_handles_aliases_and_bad_shapes():
    """Test reading the experience list under either key."""
    assert get_experiences({"experience": [{"title": "Dev"}]}) == [{"title": "Dev"}]
    assert get_experiences({"experiences": "not a list"}) == []
    assert get_experiences("text") == []


def test_resolve_section_alias():
    """Test that section paths are rewritten to the key the document uses."""
    legacy = {"experience": [{"title": "Software Engineer"}]}
    assert resolve_section_alias(legacy, "experiences[0].title") == "experience[0].title"
    assert resolve_section_alias(legacy, "summary") == "summary"
    assert (
        resolve_section_alias({"experiences": []}, "experiences[0].title")
        == "experiences[0].title"
    )
