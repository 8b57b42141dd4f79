# chat_server/api/rooms.py
from typing import List

from fastapi import APIRouter, Depends

from chat_server.api.dependencies import (
    get_current_active_user,
    get_directory,
    get_event_dispatcher,
    get_room_interactor,
)
from chat_server.domain.events import RoomMembershipChanged
from chat_server.infrastructure import schemas
from chat_server.infrastructure.event_dispatcher import EventDispatcher
from chat_server.interactors.room_interactor import RoomInteractor
from chat_server.realtime.directory import ConversationDirectory

router = APIRouter()


@router.get("/", response_model=List[schemas.Room])
async def read_my_rooms(
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await room_interactor.user_rooms(current_user.id)


@router.get("/browse", response_model=List[schemas.RoomBrowse])
async def browse_rooms(
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await room_interactor.browse(current_user.id)


@router.post("/", response_model=schemas.Room, status_code=201)
async def create_room(
    room: schemas.RoomCreate,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    created = await room_interactor.create_room(room, current_user.id)
    await event_dispatcher.dispatch(
        RoomMembershipChanged(action="created", room_id=created.id, user_id=current_user.id)
    )
    return created


@router.get("/{room_id}", response_model=schemas.RoomDetail)
async def read_room(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await room_interactor.room_detail(room_id, current_user.id)


@router.get("/{room_id}/users", response_model=List[schemas.RoomUser])
async def read_room_users(
    room_id: int,
    directory: ConversationDirectory = Depends(get_directory),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await directory.room_users(room_id, current_user.id)


@router.post("/{room_id}/join", response_model=schemas.Room)
async def join_room(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    room = await room_interactor.join_room(room_id, current_user.id)
    await event_dispatcher.dispatch(
        RoomMembershipChanged(action="joined", room_id=room_id, user_id=current_user.id)
    )
    return room


@router.post("/{room_id}/leave")
async def leave_room(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    result = await room_interactor.leave_room(room_id, current_user.id)
    if result.left:
        await event_dispatcher.dispatch(
            RoomMembershipChanged(
                action="left",
                room_id=room_id,
                user_id=current_user.id,
                room_deactivated=result.room_deactivated,
            )
        )
    return {"left": result.left, "room_deactivated": result.room_deactivated}
