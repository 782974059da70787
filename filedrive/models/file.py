from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from .base import CamelModel


class FileOut(CamelModel):
    """
    File metadata as listed inside a folder.

    File content storage is not handled by this service; only the records
    are read (folder listings) and removed (folder deletion).
    """

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str
    mime_type: str
    size: int = 0
    folder_id: Optional[str] = None  # Files in root have no folder_id
    owner_id: str
    created_at: datetime
    updated_at: datetime
