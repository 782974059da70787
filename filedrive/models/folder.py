from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .base import CamelModel
from .file import FileOut
from .user import PyObjectId
from filedrive.utils.clock import utcnow

# Synthetic root of every user's drive (not persisted)
MY_DRIVE_ID = ""
MY_DRIVE_NAME = "My Drive"


# --- Request bodies ---


class FolderCreate(CamelModel):
    name: str
    parent_id: Optional[str] = None


class FolderRename(CamelModel):
    name: str


class FolderShare(CamelModel):
    """`duration_hours=None` (and not indefinite) removes the share."""

    duration_hours: Optional[float] = None
    indefinite: bool = False


# --- Storage ---


class FolderInDB(BaseModel):
    id: PyObjectId = Field(default_factory=PyObjectId, alias="_id")
    name: str
    owner_id: PyObjectId
    parent_id: Optional[str] = None
    share_expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )


# --- Responses ---


class Folder(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str
    owner_id: str
    parent_id: Optional[str] = None
    share_expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class FolderWithContents(Folder):
    subfolders: List[Folder] = []
    files: List[FileOut] = []


class FolderNode(Folder):
    subfolders: List["FolderNode"] = []


class Breadcrumb(CamelModel):
    """A single piece of the breadcrumb path."""

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str
    share_expires_at: Optional[datetime] = None


class FolderResponse(CamelModel):
    folder: Folder


class FolderAccessResponse(CamelModel):
    folder: FolderWithContents
    is_owner: bool


class FolderTreeResponse(CamelModel):
    folders: List[FolderNode]


class BreadcrumbsResponse(CamelModel):
    breadcrumbs: List[Breadcrumb]
