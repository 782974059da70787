"""
Folder access control for owners and share-link visitors.

A folder is readable by its owner, and by anyone else while the folder or
one of its ancestors has a share that has not yet expired. Shares never
grant write access.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from filedrive.services.folder_store import FolderStore
from filedrive.utils.clock import as_utc
from filedrive.utils.exceptions import ForbiddenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    is_owner: bool


def is_valid_share(share_expires_at: Optional[datetime], now: datetime) -> bool:
    """True if a share expiry is set and strictly later than `now`."""
    if share_expires_at is None:
        return False
    return as_utc(share_expires_at) > as_utc(now)


def is_owner(folder: dict, requester_id: Optional[str]) -> bool:
    if requester_id is None:
        return False
    return str(folder["owner_id"]) == str(requester_id)


async def has_valid_share_in_ancestors(
    store: FolderStore, folder_id, now: datetime
) -> bool:
    """
    Checks the folder itself and every ancestor up to the root for an
    active share. Unknown folders have no share.
    """
    chain = await store.walk_to_root(folder_id)
    return any(is_valid_share(f.get("share_expires_at"), now) for f in chain)


async def can_access_folder(
    store: FolderStore, folder: dict, requester_id: Optional[str], now: datetime
) -> AccessDecision:
    if is_owner(folder, requester_id):
        return AccessDecision(allowed=True, is_owner=True)

    # A directly shared folder needs no walk
    if is_valid_share(folder.get("share_expires_at"), now):
        return AccessDecision(allowed=True, is_owner=False)

    allowed = await has_valid_share_in_ancestors(store, folder["_id"], now)
    return AccessDecision(allowed=allowed, is_owner=False)


async def require_read_access(
    store: FolderStore, folder: dict, requester_id: Optional[str], now: datetime
) -> AccessDecision:
    decision = await can_access_folder(store, folder, requester_id, now)
    if not decision.allowed:
        logger.debug(
            "Denied read of folder %s for requester %s", folder["_id"], requester_id
        )
        raise ForbiddenError("You are not allowed to access this folder")
    return decision


def require_owner(folder: dict, requester_id: Optional[str], action: str) -> None:
    """Raises ForbiddenError unless the requester owns the folder."""
    if not is_owner(folder, requester_id):
        logger.debug(
            "Denied %s of folder %s for requester %s",
            action,
            folder["_id"],
            requester_id,
        )
        raise ForbiddenError(f"You are not allowed to {action} this folder")
