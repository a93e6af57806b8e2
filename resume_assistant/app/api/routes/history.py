import logging

from fastapi import APIRouter, Depends, HTTPException

from resume_assistant.app.agent.collaborators import SqlPersistence
from resume_assistant.app.api.dependencies import get_history_store, get_persistence
from resume_assistant.app.api.routes.route_models import (
    HistoryMoveRequest,
    HistoryMoveResponse,
    OptimizationPatchRequest,
)
from resume_assistant.app.history.store import (
    ConcurrentModificationError,
    HistoryEntryNotFoundError,
    HistoryEntrySnapshot,
    HistoryStore,
    OptimizationPatch,
    TimelineSnapshot,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/history", tags=["history"])


def _expected(request: HistoryMoveRequest | None) -> int | None:
    return request.expected_version if request else None


def _move_response(
    entry: HistoryEntrySnapshot | None,
    user_id: str,
    store: HistoryStore,
    persistence: SqlPersistence,
) -> HistoryMoveResponse:
    document = persistence.get_version(entry.document_version_id) if entry else None
    return HistoryMoveResponse(
        entry=entry,
        document=document,
        version=store.get_timeline(user_id).version,
    )


@router.get("/{user_id}", response_model=TimelineSnapshot)
def get_timeline(
    user_id: str,
    store: HistoryStore = Depends(get_history_store),
) -> TimelineSnapshot:
    """Return a user's past and future stacks."""
    return store.get_timeline(user_id)


@router.post("/{user_id}/undo", response_model=HistoryMoveResponse)
def undo(
    user_id: str,
    request: HistoryMoveRequest | None = None,
    store: HistoryStore = Depends(get_history_store),
    persistence: SqlPersistence = Depends(get_persistence),
) -> HistoryMoveResponse:
    """
    Undo the user's latest change.

    Args:
        user_id (str): The timeline owner.
        request (HistoryMoveRequest | None): The timeline version the client last saw.
        store (HistoryStore): The History Store dependency.
        persistence (SqlPersistence): Used to load the document of the new current entry.

    Returns:
        HistoryMoveResponse: The new current entry and its document, or empty values
            when nothing remains in the past stack.

    Raises:
        HTTPException: 409 if the timeline was modified concurrently.

    """
    try:
        entry = store.undo(user_id, expected_version=_expected(request))
    except ConcurrentModificationError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _move_response(entry, user_id, store, persistence)


@router.post("/{user_id}/redo", response_model=HistoryMoveResponse)
def redo(
    user_id: str,
    request: HistoryMoveRequest | None = None,
    store: HistoryStore = Depends(get_history_store),
    persistence: SqlPersistence = Depends(get_persistence),
) -> HistoryMoveResponse:
    """Redo the user's latest undone change. Raises 409 on concurrent modification."""
    try:
        entry = store.redo(user_id, expected_version=_expected(request))
    except ConcurrentModificationError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _move_response(entry, user_id, store, persistence)


@router.patch("/entries/{entry_id}", response_model=HistoryEntrySnapshot)
def update_optimization(
    entry_id: int,
    request: OptimizationPatchRequest,
    store: HistoryStore = Depends(get_history_store),
) -> HistoryEntrySnapshot:
    """Update the score or notes of a history entry. Raises 404 for an unknown entry."""
    patch = OptimizationPatch(**request.model_dump(exclude_unset=True))
    try:
        return store.update_optimization(entry_id, patch)
    except HistoryEntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get("/entries/{entry_id}", response_model=HistoryEntrySnapshot)
def get_entry(
    entry_id: int,
    store: HistoryStore = Depends(get_history_store),
) -> HistoryEntrySnapshot:
    """Return one history entry. Raises 404 for an unknown entry."""
    try:
        return store.get_entry(entry_id)
    except HistoryEntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
