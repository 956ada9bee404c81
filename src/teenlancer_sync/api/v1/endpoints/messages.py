"""Endpoints acting on individual local messages."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from teenlancer_sync.services.errors import MessageNotFoundError
from teenlancer_sync.services.message_store import MessageStore

from ..dependencies import CurrentUserIdDep, SessionDep

router = APIRouter(prefix="/messages", tags=["messages"])


@router.delete("/{local_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    local_id: int,
    current_user_id: CurrentUserIdDep,
    db: SessionDep,
) -> None:
    """Delete a message the caller sent or received.

    Provider-originated messages are tombstoned so they never come back.
    """
    try:
        MessageStore(db).delete(local_id, current_user_id)
    except MessageNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
