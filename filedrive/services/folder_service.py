import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from filedrive.models.folder import (
    MY_DRIVE_ID,
    MY_DRIVE_NAME,
    Breadcrumb,
    Folder,
    FolderNode,
    FolderWithContents,
)
from filedrive.services.folder_store import FolderStore
from filedrive.services.sharing import (
    is_owner,
    is_valid_share,
    require_owner,
    require_read_access,
)
from filedrive.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
# Characters that are stripped from folder names
INVALID_NAME_CHARS = re.compile(r'[<>:"/\\|?*]')
MAX_SHARE_HOURS = 24 * 365 * 10
# Expiry stored for shares without an end date
INDEFINITE_SHARE_EXPIRY = datetime(9999, 12, 31, 23, 59, 59, tzinfo=timezone.utc)


def name_sort_key(item) -> tuple[str, str]:
    name = item["name"] if isinstance(item, dict) else item.name
    return name.casefold(), name


def sorted_by_name(items: Iterable) -> list:
    return sorted(items, key=name_sort_key)


def clean_folder_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Folder name is required")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"Folder name must be at most {MAX_NAME_LENGTH} characters"
        )
    cleaned = INVALID_NAME_CHARS.sub("", cleaned)
    if not cleaned:
        raise ValidationError("Folder name contains only invalid characters")
    return cleaned


def share_expiry(
    duration_hours: Optional[float], indefinite: bool, now: datetime
) -> Optional[datetime]:
    """
    Computes the new `share_expires_at` for a share request.

    `indefinite` wins over any duration; a missing duration clears the share.
    """
    if indefinite:
        return INDEFINITE_SHARE_EXPIRY
    if duration_hours is None:
        return None
    if duration_hours <= 0:
        raise ValidationError("Share duration must be a positive number of hours")
    if duration_hours > MAX_SHARE_HOURS:
        raise ValidationError(
            f"Share duration must be at most {MAX_SHARE_HOURS} hours"
        )
    return now + timedelta(hours=duration_hours)


async def load_folder(store: FolderStore, folder_id, message: str = "Folder not found") -> dict:
    folder = await store.find_by_id(folder_id)
    if folder is None:
        raise NotFoundError(message)
    return folder


# --- Breadcrumbs ---


def my_drive_breadcrumb() -> Breadcrumb:
    return Breadcrumb(id=MY_DRIVE_ID, name=MY_DRIVE_NAME, share_expires_at=None)


def build_breadcrumbs(chain: list[dict], owner: bool, now: datetime) -> list[Breadcrumb]:
    """
    Turns a root-first folder chain into the breadcrumb trail shown to a viewer.

    Owners see "My Drive" followed by the whole chain. Everyone else sees the
    chain from the shallowest validly shared folder down to the target, with
    "My Drive" in front only when that folder is at root level.
    """
    if not chain:
        raise InvariantViolation("Cannot build breadcrumbs for an empty folder chain")

    if owner:
        return [my_drive_breadcrumb()] + [Breadcrumb.model_validate(f) for f in chain]

    start = next(
        (
            index
            for index, folder in enumerate(chain)
            if is_valid_share(folder.get("share_expires_at"), now)
        ),
        None,
    )
    if start is None:
        raise InvariantViolation(
            f"No shared folder above {chain[-1]['_id']} for a non-owner"
        )

    trail = [Breadcrumb.model_validate(f) for f in chain[start:]]
    if chain[start].get("parent_id") is None:
        trail.insert(0, my_drive_breadcrumb())
    return trail


async def get_breadcrumbs(
    store: FolderStore, folder_id, requester_id: Optional[str], now: datetime
) -> list[Breadcrumb]:
    """
    Reads the folder chain once and derives both the access decision and the
    trail from it.
    """
    folder = await load_folder(store, folder_id)
    chain = await store.walk_to_root(folder["_id"])
    owner = is_owner(folder, requester_id)
    if not owner and not any(
        is_valid_share(f.get("share_expires_at"), now) for f in chain
    ):
        logger.debug("Denied breadcrumbs of %s to %s", folder["_id"], requester_id)
        raise ForbiddenError("You are not allowed to access this folder")
    return build_breadcrumbs(chain, owner, now)


# --- Tree ---


def assemble_folder_tree(folders: Iterable[dict]) -> list[FolderNode]:
    """
    Nests a flat list of folder documents into a forest.

    Siblings are sorted by name at every level. Folders whose parent is not
    part of `folders` are left out.
    """
    nodes: dict[str, FolderNode] = {}
    parents: dict[str, Optional[str]] = {}
    for folder in folders:
        node = FolderNode.model_validate(folder)
        nodes[node.id] = node
        parents[node.id] = folder.get("parent_id")

    roots: list[FolderNode] = []
    for node_id, node in nodes.items():
        parent_id = parents[node_id]
        if parent_id is None:
            roots.append(node)
        elif parent_id in nodes:
            nodes[parent_id].subfolders.append(node)

    def sort_level(level: list[FolderNode]) -> None:
        level.sort(key=name_sort_key)
        for child in level:
            sort_level(child.subfolders)

    sort_level(roots)
    return roots


async def get_folder_tree(store: FolderStore, owner_id: str) -> list[FolderNode]:
    folders = await store.find_all_by_owner(owner_id)
    return assemble_folder_tree(folders)


# --- Reads ---


async def get_folder(
    store: FolderStore, folder_id, requester_id: Optional[str], now: datetime
) -> tuple[FolderWithContents, bool]:
    """
    Returns the folder with its direct subfolders and files, and whether the
    requester owns it.
    """
    folder = await load_folder(store, folder_id)
    decision = await require_read_access(store, folder, requester_id, now)

    folder_key = str(folder["_id"])
    subfolders = sorted_by_name(await store.find_children(folder_key))
    files = sorted_by_name(await store.find_files(folder_key))
    contents = FolderWithContents.model_validate(
        {**folder, "subfolders": subfolders, "files": files}
    )
    return contents, decision.is_owner


async def get_root_contents(
    store: FolderStore, owner_id: str, now: datetime
) -> FolderWithContents:
    subfolders = sorted_by_name(await store.find_children(None, owner_id))
    files = sorted_by_name(await store.find_files(None, owner_id))
    return FolderWithContents(
        id=MY_DRIVE_ID,
        name=MY_DRIVE_NAME,
        owner_id=owner_id,
        parent_id=None,
        share_expires_at=None,
        created_at=now,
        updated_at=now,
        subfolders=subfolders,
        files=files,
    )


# --- Writes ---


async def create_folder(
    store: FolderStore, owner_id: str, name: str, parent_id: Optional[str] = None
) -> Folder:
    name = clean_folder_name(name)
    parent_id = parent_id or None

    # Ensure parent folder exists and is owned by the user
    if parent_id:
        parent = await load_folder(store, parent_id, "Parent folder not found")
        if not is_owner(parent, owner_id):
            raise ForbiddenError(
                "You are not allowed to create a folder in this parent folder"
            )
        parent_id = str(parent["_id"])

    existing = await store.find_by_owner_parent_name(owner_id, parent_id, name)
    if existing:
        raise ConflictError("A folder with this name already exists")

    folder = await store.create(owner_id, name, parent_id)
    logger.info("Created folder %s (%r) for owner %s", folder["_id"], name, owner_id)
    return Folder.model_validate(folder)


async def rename_folder(
    store: FolderStore, folder_id, owner_id: str, name: str
) -> Folder:
    name = clean_folder_name(name)
    folder = await load_folder(store, folder_id)
    require_owner(folder, owner_id, "rename")

    if folder["name"] == name:
        raise ValidationError("The new name must be different from the current name")

    existing = await store.find_by_owner_parent_name(
        owner_id, folder.get("parent_id"), name
    )
    if existing and existing["_id"] != folder["_id"]:
        raise ConflictError("A folder with this name already exists")

    updated = await store.update_name(folder["_id"], name)
    if updated is None:
        raise NotFoundError("Folder not found")
    logger.info("Renamed folder %s from %r to %r", folder["_id"], folder["name"], name)
    return Folder.model_validate(updated)


async def delete_folder(store: FolderStore, folder_id, owner_id: str) -> None:
    folder = await load_folder(store, folder_id)
    require_owner(folder, owner_id, "delete")

    folders_deleted, files_deleted = await store.delete_cascade(
        str(folder["_id"]), folder["owner_id"]
    )
    logger.info(
        "Deleted folder %s with %d folder(s) and %d file(s)",
        folder["_id"],
        folders_deleted,
        files_deleted,
    )


async def share_folder(
    store: FolderStore,
    folder_id,
    owner_id: str,
    duration_hours: Optional[float],
    indefinite: bool,
    now: datetime,
) -> Folder:
    folder = await load_folder(store, folder_id)
    require_owner(folder, owner_id, "share")

    expires_at = share_expiry(duration_hours, indefinite, now)
    updated = await store.update_share(folder["_id"], expires_at)
    if updated is None:
        raise NotFoundError("Folder not found")

    if expires_at is None:
        logger.info("Unshared folder %s", folder["_id"])
    else:
        logger.info("Shared folder %s until %s", folder["_id"], expires_at.isoformat())
    return Folder.model_validate(updated)
