# chat_server/api/friends.py
from typing import List

from fastapi import APIRouter, Depends

from chat_server.api.dependencies import (
    get_current_active_user,
    get_directory,
    get_event_dispatcher,
    get_friend_interactor,
)
from chat_server.domain.enums import FriendshipStatus
from chat_server.domain.events import FriendshipChanged
from chat_server.infrastructure import schemas
from chat_server.infrastructure.event_dispatcher import EventDispatcher
from chat_server.interactors.friend_interactor import FriendInteractor
from chat_server.realtime.directory import ConversationDirectory

router = APIRouter()


@router.get("/", response_model=List[schemas.Friend])
async def read_friends(
    directory: ConversationDirectory = Depends(get_directory),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await directory.friends_of(current_user.id)


@router.get("/requests", response_model=List[schemas.FriendRequest])
async def read_received_requests(
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await friend_interactor.received_requests(current_user.id)


@router.get("/requests/sent", response_model=List[schemas.FriendRequest])
async def read_sent_requests(
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await friend_interactor.sent_requests(current_user.id)


@router.get("/requests/count")
async def read_pending_count(
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return {"count": await friend_interactor.pending_count(current_user.id)}


@router.get("/status/{user_id}", response_model=schemas.FriendshipStatusResponse)
async def read_friendship_status(
    user_id: int,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    perspective = await friend_interactor.friendship_status(current_user.id, user_id)
    return schemas.FriendshipStatusResponse(user_id=user_id, status=perspective.value)


@router.post("/requests", response_model=schemas.FriendRequest, status_code=201)
async def send_friend_request(
    request: schemas.FriendRequestCreate,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    friend_request = await friend_interactor.send_request(
        current_user.id, request.addressee_id
    )
    await event_dispatcher.dispatch(
        FriendshipChanged(
            action="requested",
            actor_id=current_user.id,
            actor_username=current_user.username,
            other_id=request.addressee_id,
            friendship_id=friend_request.id,
        )
    )
    return friend_request


@router.post("/requests/{friendship_id}/accept", response_model=schemas.Friend)
async def accept_friend_request(
    friendship_id: int,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    friend = await friend_interactor.accept_request(friendship_id, current_user.id)
    await event_dispatcher.dispatch(
        FriendshipChanged(
            action="accepted",
            actor_id=current_user.id,
            actor_username=current_user.username,
            other_id=friend.id,
            friendship_id=friendship_id,
        )
    )
    return friend


@router.post("/requests/{friendship_id}/reject", status_code=204)
async def reject_friend_request(
    friendship_id: int,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    change = await friend_interactor.reject_request(friendship_id, current_user.id)
    await event_dispatcher.dispatch(
        FriendshipChanged(
            action="rejected",
            actor_id=current_user.id,
            actor_username=current_user.username,
            other_id=change.other_id,
            friendship_id=friendship_id,
        )
    )


@router.delete("/{friendship_id}", status_code=204)
async def remove_friendship(
    friendship_id: int,
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    change = await friend_interactor.remove_friendship(friendship_id, current_user.id)
    action = (
        "cancelled"
        if change.previous_status == FriendshipStatus.PENDING.value
        else "removed"
    )
    await event_dispatcher.dispatch(
        FriendshipChanged(
            action=action,
            actor_id=current_user.id,
            actor_username=current_user.username,
            other_id=change.other_id,
            friendship_id=friendship_id,
        )
    )
