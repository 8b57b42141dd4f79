# chat_server/api/messages.py
from typing import List

from fastapi import APIRouter, Depends, Query

from chat_server.api.dependencies import (
    get_config,
    get_current_active_user,
    get_event_dispatcher,
    get_message_interactor,
)
from chat_server.config import AppConfig
from chat_server.domain.events import DMConversationCleared, DMMessageDeleted
from chat_server.infrastructure import schemas
from chat_server.infrastructure.event_dispatcher import EventDispatcher
from chat_server.interactors.message_interactor import MessageInteractor

router = APIRouter()


@router.get("/room/{room_id}", response_model=List[schemas.Message])
async def read_room_messages(
    room_id: int,
    limit: int | None = Query(None, ge=1, le=200),
    offset: int = Query(0, ge=0),
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    config: AppConfig = Depends(get_config),
):
    return await message_interactor.room_history(
        room_id, current_user.id, limit or config.HISTORY_PAGE_SIZE, offset
    )


@router.get("/dm/{user_id}", response_model=List[schemas.Message])
async def read_dm_messages(
    user_id: int,
    limit: int | None = Query(None, ge=1, le=200),
    offset: int = Query(0, ge=0),
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    config: AppConfig = Depends(get_config),
):
    return await message_interactor.dm_history(
        current_user.id, user_id, limit or config.HISTORY_PAGE_SIZE, offset
    )


@router.delete("/dm/{message_id}")
async def delete_dm_message(
    message_id: int,
    request: schemas.MessageDeleteRequest | None = None,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    scope = (request or schemas.MessageDeleteRequest()).scope
    deletion = await message_interactor.delete_dm_message(
        message_id, current_user.id, scope
    )
    await event_dispatcher.dispatch(
        DMMessageDeleted(
            message_id=message_id,
            deleted_by=current_user.id,
            deleted_by_username=current_user.username,
            conversation_with=deletion.other_user_id,
            scope=deletion.scope.value,
        )
    )
    return {"message_id": message_id, "scope": deletion.scope}


@router.delete("/dm/conversation/{user_id}", response_model=schemas.ConversationClearResult)
async def clear_dm_conversation(
    user_id: int,
    request: schemas.MessageDeleteRequest | None = None,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    scope = (request or schemas.MessageDeleteRequest()).scope
    count = await message_interactor.clear_conversation(current_user.id, user_id, scope)
    await event_dispatcher.dispatch(
        DMConversationCleared(
            deleted_by=current_user.id,
            deleted_by_username=current_user.username,
            other_user_id=user_id,
            scope=scope.value,
            message_count=count,
        )
    )
    return schemas.ConversationClearResult(scope=scope, message_count=count)
