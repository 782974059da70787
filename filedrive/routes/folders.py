from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Response, status

from filedrive.auth.auth import get_current_user, get_optional_user
from filedrive.auth.schemas import TokenData
from filedrive.models.folder import (
    BreadcrumbsResponse,
    FolderAccessResponse,
    FolderCreate,
    FolderRename,
    FolderResponse,
    FolderShare,
    FolderTreeResponse,
)
from filedrive.services import folder_service
from filedrive.services.folder_store import FolderStore, get_folder_store
from filedrive.utils.clock import request_time

router = APIRouter()

Store = Annotated[FolderStore, Depends(get_folder_store)]
CurrentUser = Annotated[TokenData, Depends(get_current_user)]
OptionalUser = Annotated[Optional[TokenData], Depends(get_optional_user)]
Now = Annotated[datetime, Depends(request_time)]


def _user_id(user: Optional[TokenData]) -> Optional[str]:
    return user.user_id if user else None


# Root contents ("My Drive")
@router.get("/root", response_model=FolderAccessResponse)
async def get_root_folder(store: Store, current_user: CurrentUser, now: Now):
    folder = await folder_service.get_root_contents(store, current_user.user_id, now)
    return {"folder": folder, "is_owner": True}


# Get the folder tree structure
@router.get("/tree", response_model=FolderTreeResponse)
async def get_folder_tree(store: Store, current_user: CurrentUser):
    folders = await folder_service.get_folder_tree(store, current_user.user_id)
    return {"folders": folders}


# Get a folder (owner, or anyone while it or an ancestor is shared)
@router.get("/{folder_id}", response_model=FolderAccessResponse)
async def get_folder(folder_id: str, store: Store, user: OptionalUser, now: Now):
    folder, is_owner = await folder_service.get_folder(
        store, folder_id, _user_id(user), now
    )
    return {"folder": folder, "is_owner": is_owner}


# Get the breadcrumb path for a specific folder
@router.get("/{folder_id}/breadcrumbs", response_model=BreadcrumbsResponse)
async def get_folder_breadcrumbs(
    folder_id: str, store: Store, user: OptionalUser, now: Now
):
    breadcrumbs = await folder_service.get_breadcrumbs(
        store, folder_id, _user_id(user), now
    )
    return {"breadcrumbs": breadcrumbs}


# Create a new folder
@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    folder_data: FolderCreate, store: Store, current_user: CurrentUser
):
    folder = await folder_service.create_folder(
        store, current_user.user_id, folder_data.name, folder_data.parent_id
    )
    return {"folder": folder}


# Rename a folder
@router.put("/{folder_id}", response_model=FolderResponse)
async def rename_folder(
    folder_id: str, data: FolderRename, store: Store, current_user: CurrentUser
):
    folder = await folder_service.rename_folder(
        store, folder_id, current_user.user_id, data.name
    )
    return {"folder": folder}


# Permanently delete a folder and its contents
@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(folder_id: str, store: Store, current_user: CurrentUser):
    await folder_service.delete_folder(store, folder_id, current_user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Share or unshare a folder
@router.post("/{folder_id}/share", response_model=FolderResponse)
async def share_folder(
    folder_id: str,
    data: FolderShare,
    store: Store,
    current_user: CurrentUser,
    now: Now,
):
    folder = await folder_service.share_folder(
        store,
        folder_id,
        current_user.user_id,
        data.duration_hours,
        data.indefinite,
        now,
    )
    return {"folder": folder}
