import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from filedrive.auth.auth import (
    create_access_token,
    get_current_user,
    get_password_hash,
    verify_password,
)
from filedrive.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterResponse,
    TokenData,
    UserCreate,
)
from filedrive.database import USERS, get_database
from filedrive.models.user import UserInDB, UserPublic
from filedrive.services.folder_store import to_object_id
from filedrive.utils.exceptions import ConflictError, NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    user: UserCreate,
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)],
):
    """Creates an account. No token is returned; clients log in afterwards."""
    user_collection = db[USERS]
    existing_user = await user_collection.find_one({"username": user.username})
    if existing_user:
        raise ConflictError("Username already exists")

    user_in_db = UserInDB(
        username=user.username, hashed_password=get_password_hash(user.password)
    )
    user_dict = user_in_db.model_dump(by_alias=True, exclude={"id"})

    try:
        new_user = await user_collection.insert_one(user_dict)
    except DuplicateKeyError:
        raise ConflictError("Username already exists")

    created_user = await user_collection.find_one({"_id": new_user.inserted_id})
    logger.info("Registered user %s", user.username)
    return {"user": UserPublic.model_validate(created_user)}


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)],
):
    user = await db[USERS].find_one({"username": credentials.username})
    if not user or not verify_password(credentials.password, user["hashed_password"]):
        raise UnauthorizedError("Invalid credentials")

    token = create_access_token(
        TokenData(user_id=str(user["_id"]), username=user["username"])
    )
    return {"user": UserPublic.model_validate(user), "token": token}


@router.get("/me", response_model=UserPublic)
async def read_current_user(
    current_user: Annotated[TokenData, Depends(get_current_user)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)],
):
    user_id = to_object_id(current_user.user_id)
    user = await db[USERS].find_one({"_id": user_id}) if user_id else None
    if user is None:
        raise NotFoundError("User not found")
    return UserPublic.model_validate(user)
