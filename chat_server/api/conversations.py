# chat_server/api/conversations.py
from typing import List

from fastapi import APIRouter, Depends

from chat_server.api.dependencies import (
    get_conversation_interactor,
    get_current_active_user,
    get_directory,
    get_event_dispatcher,
)
from chat_server.domain.events import ConversationVisibilityChanged
from chat_server.infrastructure import schemas
from chat_server.infrastructure.event_dispatcher import EventDispatcher
from chat_server.interactors.conversation_interactor import (
    ConversationChange,
    ConversationInteractor,
)
from chat_server.realtime.directory import ConversationDirectory

router = APIRouter()


async def _announce(
    event_dispatcher: EventDispatcher, action: str, change: ConversationChange
) -> None:
    await event_dispatcher.dispatch(
        ConversationVisibilityChanged(
            action=action,
            conversation_id=change.conversation_id,
            user_id=change.user_id,
            other_user_id=change.other_user_id,
            fully_deleted=change.fully_deleted,
        )
    )


@router.get("/", response_model=List[schemas.Conversation])
async def read_conversations(
    directory: ConversationDirectory = Depends(get_directory),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await directory.dm_conversations(current_user.id)


@router.get("/{conversation_id}", response_model=schemas.Conversation)
async def read_conversation(
    conversation_id: int,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await conversation_interactor.get_conversation(conversation_id, current_user.id)


@router.put("/{conversation_id}/hide", status_code=204)
async def hide_conversation(
    conversation_id: int,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    change = await conversation_interactor.hide(conversation_id, current_user.id)
    await _announce(event_dispatcher, "hidden", change)


@router.put("/{conversation_id}/unhide", status_code=204)
async def unhide_conversation(
    conversation_id: int,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    change = await conversation_interactor.unhide(conversation_id, current_user.id)
    await _announce(event_dispatcher, "unhidden", change)


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: int,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    change = await conversation_interactor.delete(conversation_id, current_user.id)
    await _announce(event_dispatcher, "deleted", change)
    return {"fully_deleted": change.fully_deleted, "tombstoned": change.tombstoned}
