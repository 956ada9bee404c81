"""Conversation endpoints: resolution, reconciliation and summaries."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from teenlancer_sync.schemas.conversation import (
    ConversationSummaryResponse,
    MarkReadRequest,
    MarkReadResponse,
    ReconcileRequest,
    ReconcileResponse,
    ResolveRequest,
    ResolveResponse,
)
from teenlancer_sync.schemas.message import LocalMessageCreate, MessageResponse
from teenlancer_sync.services.aggregator import ConversationAggregator
from teenlancer_sync.services.conversation_resolver import (
    ConversationResolver,
    conversation_name,
)
from teenlancer_sync.services.errors import ConversationNotFoundError, ValidationError
from teenlancer_sync.services.ingestion import MessageIngestionPipeline
from teenlancer_sync.services.message_store import MessageStore
from teenlancer_sync.services.provider import ProviderError

from ..dependencies import (
    CurrentUserIdDep,
    ProviderClientDep,
    SessionDep,
    provider_http_error,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post("/resolve", response_model=ResolveResponse)
async def resolve_conversation(
    request: ResolveRequest,
    current_user_id: CurrentUserIdDep,
    db: SessionDep,
    client: ProviderClientDep,
) -> ResolveResponse:
    """Return the provider conversation for a job and participant pair.

    The conversation is created on the provider the first time either
    participant asks for it.
    """
    if current_user_id not in (request.participant_a, request.participant_b):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only a participant can open this conversation",
        )

    resolver = ConversationResolver(db, client)
    try:
        handle = await resolver.resolve(
            request.job_id, request.participant_a, request.participant_b
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProviderError as exc:
        logger.warning("Resolving conversation for job %s failed: %s", request.job_id, exc)
        raise provider_http_error(exc) from exc

    return ResolveResponse(
        external_handle=handle,
        friendly_name=conversation_name(
            request.job_id, request.participant_a, request.participant_b
        ),
    )


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_conversation(
    request: ReconcileRequest,
    current_user_id: CurrentUserIdDep,
    db: SessionDep,
    client: ProviderClientDep,
) -> ReconcileResponse:
    """Pull every provider message of a conversation into the local store."""
    pipeline = MessageIngestionPipeline(db, client)
    try:
        result = await pipeline.reconcile(request.conversation_handle, request.job_id)
    except ConversationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ProviderError as exc:
        logger.warning(
            "Reconciling %s for %s failed: %s", request.conversation_handle, current_user_id, exc
        )
        raise provider_http_error(exc) from exc

    return ReconcileResponse(
        synced=result.synced,
        skipped=result.skipped,
        total=result.total,
        job_id=result.job_id,
    )


@router.get("", response_model=list[ConversationSummaryResponse])
async def list_conversations(
    current_user_id: CurrentUserIdDep,
    db: SessionDep,
) -> list[ConversationSummaryResponse]:
    """List the caller's conversations, most recently active first."""
    summaries = ConversationAggregator(db).summaries_for(current_user_id)
    return [
        ConversationSummaryResponse(
            job_id=summary.job_id,
            job_title=summary.job_title,
            other_user_id=summary.other_user_id,
            other_user_name=summary.other_user_name,
            other_user_photo=summary.other_user_photo,
            last_message=MessageResponse.model_validate(summary.last_message),
            unread_count=summary.unread_count,
        )
        for summary in summaries
    ]


@router.get("/{job_id}/messages", response_model=list[MessageResponse])
async def list_job_messages(
    job_id: str,
    current_user_id: CurrentUserIdDep,
    db: SessionDep,
    with_user: str | None = Query(default=None, alias="withUser"),
) -> list[MessageResponse]:
    """Return the caller's messages for a job, oldest first."""
    messages = MessageStore(db).list_for_job(job_id, current_user_id, with_user)
    return [MessageResponse.model_validate(message) for message in messages]


@router.post("/{job_id}/read", response_model=MarkReadResponse)
async def mark_conversation_read(
    job_id: str,
    request: MarkReadRequest,
    current_user_id: CurrentUserIdDep,
    db: SessionDep,
) -> MarkReadResponse:
    """Mark everything ``fromUserId`` sent the caller on this job as read."""
    updated = MessageStore(db).mark_read(job_id, request.from_user_id, current_user_id)
    return MarkReadResponse(updated=updated)


@router.post(
    "/{job_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_local_message(
    job_id: str,
    request: LocalMessageCreate,
    current_user_id: CurrentUserIdDep,
    db: SessionDep,
) -> MessageResponse:
    """Store a message locally without sending it through the provider."""
    try:
        message = MessageStore(db).append_local(
            job_id, current_user_id, request.recipient_id, request.content
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MessageResponse.model_validate(message)
