# chat_server/api/users.py
from typing import List

from fastapi import APIRouter, Depends, Query

from chat_server.api.dependencies import get_current_active_user, get_user_interactor
from chat_server.infrastructure import schemas
from chat_server.interactors.user_interactor import UserInteractor

router = APIRouter()


@router.get("/me", response_model=schemas.User)
async def read_users_me(current_user: schemas.User = Depends(get_current_active_user)):
    return current_user


@router.put("/me", response_model=schemas.User)
async def update_user(
    user_update: schemas.UserUpdate,
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await user_interactor.update_user(current_user.id, user_update)


@router.get("/search", response_model=List[schemas.UserPublic])
async def search_users(
    query: str = Query(..., min_length=1, description="Part of a username or display name"),
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await user_interactor.search_users(query, current_user.id)
