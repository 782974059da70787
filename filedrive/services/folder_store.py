from datetime import datetime
from typing import Optional

from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from filedrive.config import settings
from filedrive.database import FILES, FOLDERS, get_database
from filedrive.models.folder import FolderInDB
from filedrive.utils.clock import utcnow
from filedrive.utils.exceptions import ConflictError, InvariantViolation

DUPLICATE_NAME_MESSAGE = "A folder with this name already exists"


def to_object_id(value) -> Optional[ObjectId]:
    """Returns None for anything that is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


class FolderStore:
    """
    Folder and file-metadata persistence on top of a Motor database.

    Folder documents keep `owner_id` as an ObjectId and `parent_id` as the
    parent's id string (None at root level).
    """

    def __init__(self, database: AsyncIOMotorDatabase, max_depth: int | None = None):
        self.folders = database[FOLDERS]
        self.files = database[FILES]
        self.max_depth = max_depth or settings.max_folder_depth

    # --- Reads ---

    async def find_by_id(self, folder_id) -> Optional[dict]:
        object_id = to_object_id(folder_id)
        if object_id is None:
            return None
        return await self.folders.find_one({"_id": object_id})

    async def find_by_owner_parent_name(
        self, owner_id, parent_id: Optional[str], name: str
    ) -> Optional[dict]:
        return await self.folders.find_one(
            {"owner_id": to_object_id(owner_id), "parent_id": parent_id, "name": name}
        )

    async def find_all_by_owner(self, owner_id) -> list[dict]:
        return await self.folders.find({"owner_id": to_object_id(owner_id)}).to_list(
            None
        )

    async def find_children(self, parent_id: Optional[str], owner_id=None) -> list[dict]:
        query = {"parent_id": parent_id}
        if owner_id is not None:
            query["owner_id"] = to_object_id(owner_id)
        return await self.folders.find(query).to_list(None)

    async def find_files(self, folder_id: Optional[str], owner_id=None) -> list[dict]:
        query = {"folder_id": folder_id}
        if owner_id is not None:
            query["owner_id"] = to_object_id(owner_id)
        return await self.files.find(query).to_list(None)

    async def walk_to_root(self, folder_id) -> list[dict]:
        """
        Follows `parent_id` links from `folder_id` up to a root-level folder.

        Returns the visited folders ordered root first, the starting folder
        last. An unknown starting id yields an empty list. A parent link that
        points at a missing folder ends the walk there.

        Raises InvariantViolation when the chain is deeper than `max_depth`
        or revisits a folder.
        """
        chain: list[dict] = []
        seen: set[ObjectId] = set()
        current_id = folder_id

        while current_id:
            if len(chain) >= self.max_depth:
                raise InvariantViolation(
                    f"Folder chain from {folder_id} exceeds {self.max_depth} levels"
                )
            folder = await self.find_by_id(current_id)
            if folder is None:
                break
            if folder["_id"] in seen:
                raise InvariantViolation(f"Folder chain from {folder_id} has a cycle")
            seen.add(folder["_id"])
            chain.append(folder)
            current_id = folder.get("parent_id")

        chain.reverse()
        return chain

    async def collect_descendants(self, folder_id: str, owner_id) -> tuple[list[str], list[str]]:
        """
        Finds all subfolder IDs and file IDs below a folder.

        Returns:
            A tuple of (subfolder ids, file ids); the starting folder itself
            is not included.
        """
        owner_object_id = to_object_id(owner_id)
        to_process = [folder_id]
        seen = {folder_id}
        subfolder_ids: list[str] = []
        file_ids: list[str] = []

        while to_process:
            current_id = to_process.pop(0)
            if current_id != folder_id:
                subfolder_ids.append(current_id)

            async for folder in self.folders.find(
                {"parent_id": current_id, "owner_id": owner_object_id}, {"_id": 1}
            ):
                child_id = str(folder["_id"])
                if child_id not in seen:
                    seen.add(child_id)
                    to_process.append(child_id)

            async for file in self.files.find(
                {"folder_id": current_id, "owner_id": owner_object_id}, {"_id": 1}
            ):
                file_ids.append(str(file["_id"]))

        return subfolder_ids, file_ids

    # --- Writes ---

    async def create(self, owner_id, name: str, parent_id: Optional[str] = None) -> dict:
        folder = FolderInDB(name=name, owner_id=owner_id, parent_id=parent_id)
        folder_dict = folder.model_dump(by_alias=True, exclude={"id"})
        try:
            result = await self.folders.insert_one(folder_dict)
        except DuplicateKeyError:
            raise ConflictError(DUPLICATE_NAME_MESSAGE)
        return await self.folders.find_one({"_id": result.inserted_id})

    async def update_name(self, folder_id, name: str) -> Optional[dict]:
        return await self._update(folder_id, {"name": name})

    async def update_share(
        self, folder_id, share_expires_at: Optional[datetime]
    ) -> Optional[dict]:
        return await self._update(folder_id, {"share_expires_at": share_expires_at})

    async def _update(self, folder_id, fields: dict) -> Optional[dict]:
        object_id = to_object_id(folder_id)
        if object_id is None:
            return None
        fields["updated_at"] = utcnow()
        try:
            await self.folders.update_one({"_id": object_id}, {"$set": fields})
        except DuplicateKeyError:
            raise ConflictError(DUPLICATE_NAME_MESSAGE)
        return await self.folders.find_one({"_id": object_id})

    async def delete_cascade(self, folder_id: str, owner_id) -> tuple[int, int]:
        """
        Deletes a folder, every folder below it and every file inside them.

        Returns:
            (number of folders deleted, number of files deleted)
        """
        subfolder_ids, file_ids = await self.collect_descendants(folder_id, owner_id)

        deleted_files = 0
        if file_ids:
            result = await self.files.delete_many(
                {"_id": {"$in": [ObjectId(fid) for fid in file_ids]}}
            )
            deleted_files = result.deleted_count

        all_folder_ids = [ObjectId(folder_id)] + [ObjectId(sid) for sid in subfolder_ids]
        result = await self.folders.delete_many({"_id": {"$in": all_folder_ids}})
        return result.deleted_count, deleted_files


def get_folder_store(
    database: AsyncIOMotorDatabase = Depends(get_database),
) -> FolderStore:
    return FolderStore(database)
