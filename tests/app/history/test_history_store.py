import pytest

from resume_assistant.app.history.store import (
    ConcurrentModificationError,
    HistoryEntryNotFoundError,
    OptimizationPatch,
)
from resume_assistant.app.models.history_entry import HistoryEntryData

USER = "user-1"


def _save(store, version_id: str, user_id: str = USER, **kwargs):
    return store.save(HistoryEntryData(user_id=user_id, document_version_id=version_id, **kwargs))


def _ids(entries) -> list[str]:
    return [entry.document_version_id for entry in entries]


def test_empty_timeline(history_store):
    """Test that a user without history has an empty timeline at version 0."""
    timeline = history_store.get_timeline(USER)
    assert timeline.version == 0
    assert timeline.past == []
    assert timeline.future == []
    assert timeline.current is None


def test_save_pushes_onto_past(history_store):
    """Test that saves stack up in order and bump the version."""
    first = _save(history_store, "v1", score=70, diffs=[{"scope": "paragraph"}])
    _save(history_store, "v2", job={"title": "Engineer"}, artifacts=[{"type": "html", "path": "p"}])

    timeline = history_store.get_timeline(USER)
    assert _ids(timeline.past) == ["v1", "v2"]
    assert timeline.current.document_version_id == "v2"
    assert timeline.current.artifacts == [{"type": "html", "path": "p"}]
    assert timeline.version == 2
    assert first.score == 70
    assert first.stack == "past"


def test_undo_and_redo(history_store):
    """Test moving entries between the stacks."""
    for version_id in ("v1", "v2", "v3"):
        _save(history_store, version_id)

    current = history_store.undo(USER)
    assert current.document_version_id == "v2"
    timeline = history_store.get_timeline(USER)
    assert _ids(timeline.past) == ["v1", "v2"]
    assert _ids(timeline.future) == ["v3"]

    redone = history_store.redo(USER)
    assert redone.document_version_id == "v3"
    assert redone.stack == "past"
    timeline = history_store.get_timeline(USER)
    assert _ids(timeline.past) == ["v1", "v2", "v3"]
    assert timeline.future == []
    assert timeline.version == 5


def test_undo_redo_order_is_lifo(history_store):
    """Test that redo replays undone entries in reverse order of undoing."""
    for version_id in ("v1", "v2", "v3"):
        _save(history_store, version_id)
    history_store.undo(USER)
    history_store.undo(USER)

    assert _ids(history_store.get_timeline(USER).future) == ["v3", "v2"]
    assert history_store.redo(USER).document_version_id == "v2"
    assert history_store.redo(USER).document_version_id == "v3"


def test_undo_last_entry_returns_none(history_store):
    """Test undoing the only entry leaves an empty past stack."""
    _save(history_store, "v1")
    assert history_store.undo(USER) is None
    timeline = history_store.get_timeline(USER)
    assert timeline.past == []
    assert _ids(timeline.future) == ["v1"]


def test_undo_and_redo_on_empty_stacks_are_no_ops(history_store):
    """Test that nothing to move leaves the version unchanged."""
    _save(history_store, "v1")
    assert history_store.redo(USER) is None
    assert history_store.get_timeline(USER).version == 1

    assert history_store.undo("nobody") is None
    assert history_store.get_timeline("nobody").version == 0


def test_save_clears_future(history_store):
    """Test that a new save makes undone entries unreachable."""
    _save(history_store, "v1")
    _save(history_store, "v2")
    history_store.undo(USER)
    _save(history_store, "v3")

    timeline = history_store.get_timeline(USER)
    assert _ids(timeline.past) == ["v1", "v3"]
    assert timeline.future == []
    assert history_store.redo(USER) is None


@pytest.mark.parametrize("saves, undos, redos", [(3, 0, 0), (4, 2, 1), (5, 5, 3), (2, 3, 1)])
def test_stack_sizes_follow_operation_counts(history_store, saves, undos, redos):
    """Test |past| = n - u + r and |future| = u - r for u <= n and r <= u."""
    for i in range(saves):
        _save(history_store, f"v{i}")
    for _ in range(undos):
        history_store.undo(USER)
    for _ in range(redos):
        history_store.redo(USER)

    effective_undos = min(undos, saves)
    effective_redos = min(redos, effective_undos)
    timeline = history_store.get_timeline(USER)
    assert len(timeline.past) == saves - effective_undos + effective_redos
    assert len(timeline.future) == effective_undos - effective_redos


def test_stale_expected_version_is_rejected(history_store):
    """Test the compare-and-swap on the timeline version."""
    _save(history_store, "v1")
    seen = history_store.get_timeline(USER).version

    history_store.save(HistoryEntryData(user_id=USER, document_version_id="v2"), expected_version=seen)
    with pytest.raises(ConcurrentModificationError) as exc_info:
        history_store.save(
            HistoryEntryData(user_id=USER, document_version_id="v3"), expected_version=seen
        )
    assert exc_info.value.expected == seen
    assert exc_info.value.actual == seen + 1
    assert _ids(history_store.get_timeline(USER).past) == ["v1", "v2"]

    with pytest.raises(ConcurrentModificationError):
        history_store.undo(USER, expected_version=seen)
    with pytest.raises(ConcurrentModificationError):
        history_store.redo(USER, expected_version=seen)


def test_expected_version_checked_on_empty_stack(history_store):
    """Test that a stale version is reported even when there is nothing to move."""
    _save(history_store, "v1")
    with pytest.raises(ConcurrentModificationError):
        history_store.redo(USER, expected_version=0)
    assert history_store.redo(USER, expected_version=1) is None


def test_timelines_are_per_user(history_store):
    """Test that users do not see each other's entries."""
    _save(history_store, "a1", user_id="alice")
    _save(history_store, "b1", user_id="bob")
    history_store.undo("alice")

    assert _ids(history_store.get_timeline("bob").past) == ["b1"]
    assert history_store.get_timeline("bob").version == 1
    assert _ids(history_store.get_timeline("alice").future) == ["a1"]


def test_get_entry(history_store):
    """Test single-entry lookup."""
    saved = _save(history_store, "v1", notes="first")
    assert history_store.get_entry(saved.id).notes == "first"
    with pytest.raises(HistoryEntryNotFoundError):
        history_store.get_entry(999)


def test_update_optimization(history_store):
    """Test that only score and notes change and the version does not."""
    saved = _save(history_store, "v1", score=60, notes="draft")

    updated = history_store.update_optimization(saved.id, OptimizationPatch(score=75))
    assert updated.score == 75
    assert updated.notes == "draft"

    updated = history_store.update_optimization(saved.id, {"notes": "final"})
    assert updated.score == 75
    assert updated.notes == "final"
    assert updated.document_version_id == "v1"
    assert history_store.get_timeline(USER).version == 1

    with pytest.raises(HistoryEntryNotFoundError):
        history_store.update_optimization(999, {"score": 1})
