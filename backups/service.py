"""
Business logic for the versioned backup store.

The service layer sits between API endpoints and the revision repository.
It handles:
- Archive-on-write: moving the old current into a history slot
- Retention: keeping history at or below MAX_BACKUPS
- Deduplication of semantically identical revisions
- Listing, preview, rename and restore of revisions

Named revisions (non-empty `customName`) are protected: dedup never removes
them and pruning only does when every historical revision is named.

Concurrency: there is no locking. Each operation is a sequence of independent
store calls, and two writers on the same key can allocate the same history
slot. Callers must keep one write per logical key in flight. A store offering
conditional puts or an atomic counter could replace the slot scan.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from backups.config import BackupConfig
from backups.exceptions import (
    BadRequestError, NotFoundError, PartialWriteError, StoreIOError
)
from backups.hashing import normalized_hash, sha256, stamp_backup_time
from backups.models import (
    META_CONTENT_HASH, META_CUSTOM_NAME, META_ORIGINAL_TIME, META_UUID, Revision
)
from backups.repository import RevisionRepository
from backups.utils import extract_details, extract_summary, iso_timestamp
from storage.object_store.buckets import ObjectStore, StoredObject
from storage.object_store.versioning import (
    historical_key, next_slot, split_key
)


def _require_key(key: str) -> str:
    if not key:
        raise BadRequestError("Filename required")
    return key


class BackupService:
    """
    Versioned backup operations over one object store.

    Example:
        service = BackupService(InMemoryObjectStore(), BackupConfig(max_backups=2))
        service.put_document("config.json", '{"a": 1}')
        # {'status': 'success', 'filename': 'config.json', 'size': ..., 'providers': 0, ...}
    """

    def __init__(
        self,
        store: ObjectStore,
        config: BackupConfig,
        clock: Optional[Callable[[], datetime]] = None,
        uuid_factory: Optional[Callable[[], str]] = None
    ):
        self.repository = RevisionRepository(store)
        self.config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._new_uuid = uuid_factory or (lambda: str(uuid.uuid4()))

    @property
    def max_backups(self) -> int:
        return self.config.max_backups

    def _now(self) -> str:
        return iso_timestamp(self._clock())

    # ==================== BASIC OPERATIONS ====================

    def get_document(self, key: str) -> StoredObject:
        """
        Get raw content of any stored revision.

        Raises:
            NotFoundError: If the key does not exist
        """
        obj = self.repository.get_object(_require_key(key))
        if obj is None:
            raise NotFoundError("Not Found")
        return obj

    def delete_document(self, key: str) -> Dict[str, Any]:
        """Delete exactly one object; history of a logical key is left alone."""
        self.repository.delete(_require_key(key))
        logger.info(f"[DELETE] Deleted {key}")
        return {"status": "success", "message": f"Deleted {key}"}

    # ==================== ARCHIVE WRITER ====================

    def put_document(self, key: str, content: str) -> Dict[str, Any]:
        """
        Write new content as the current revision of `key`.

        Steps:
            1. Read the current revision (absent: first write)
            2. Compare normalized hashes; equal content is skipped untouched
            3. Archive the old current into the lowest free history slot
            4. Write the new content as version 0
            5. Evict one historical revision if history exceeds MAX_BACKUPS

        Args:
            key: Logical document key
            content: New document text

        Returns:
            {"status": "skipped", ...} or
            {"status": "success", "filename", "size", <collection counts>}

        Raises:
            StoreIOError: A store call failed; earlier writes are not undone
            PartialWriteError: The archive slot was written, the new current was not
        """
        _require_key(key)
        current = self.repository.get_current(key)
        archived_key = None

        if current is not None:
            if normalized_hash(current.content) == normalized_hash(content):
                logger.info(f"[PUT] {key} unchanged, skipping")
                return {"status": "skipped", "message": "Content unchanged", "filename": key}

            archived_key = self._archive_current(key, current)

        now = self._now()
        final_content = stamp_backup_time(content, now)
        metadata = {
            META_UUID: self._new_uuid(),
            META_ORIGINAL_TIME: now,
            META_CONTENT_HASH: sha256(final_content),
        }

        try:
            stored = self.repository.write(key, final_content, metadata)
        except StoreIOError as e:
            if archived_key is None:
                raise
            logger.warning(f"[PUT] Partial write: {archived_key} archived but {key} not updated")
            raise PartialWriteError(key, archived_key, e) from e

        logger.info(f"[PUT] Wrote {key} ({stored.size} bytes)")

        if archived_key is not None:
            self.enforce_cap(key)

        return {
            "status": "success",
            "filename": key,
            "size": stored.size,
            **extract_summary(final_content),
        }

    def _archive_current(self, logical_key: str, current: Revision) -> str:
        """Copy the current revision into a new history slot. Returns the slot key."""
        original_time = current.original_time
        archived_content = stamp_backup_time(current.content, original_time)

        base, extension = split_key(logical_key)
        slot = next_slot(self.repository.history_slots(logical_key))
        slot_key = historical_key(base, slot, extension)

        metadata = {
            META_UUID: current.uuid or self._new_uuid(),
            META_ORIGINAL_TIME: original_time,
            META_CONTENT_HASH: sha256(archived_content),
        }
        if current.custom_name:
            metadata[META_CUSTOM_NAME] = current.custom_name

        self.repository.write(slot_key, archived_content, metadata)
        logger.info(f"[ARCHIVE] {logical_key} -> {slot_key} (originalTime={original_time})")
        return slot_key

    # ==================== RETENTION PRUNER ====================

    @staticmethod
    def _pick_victim(history: List[Revision]) -> Revision:
        """Lowest-numbered unprotected revision, else the lowest-numbered one."""
        ordered = sorted(history, key=lambda r: r.version)
        for revision in ordered:
            if not revision.is_protected:
                return revision

        victim = ordered[0]
        logger.warning(
            f"[PRUNE] All {len(ordered)} revisions are named; "
            f"evicting protected {victim.key} ({victim.custom_name!r})"
        )
        return victim

    def enforce_cap(self, logical_key: str) -> Optional[Revision]:
        """
        Evict at most one historical revision if history exceeds MAX_BACKUPS.

        History is re-listed here because archiving may have filled a gap.
        """
        history = self.repository.list_history(logical_key)
        if len(history) <= self.max_backups:
            return None

        victim = self._pick_victim(history)
        self.repository.delete(victim.key)
        logger.info(
            f"[PRUNE] {logical_key}: evicted {victim.key} "
            f"({len(history)} > {self.max_backups})"
        )
        return victim

    def prune(self, logical_key: str, cap: Optional[int] = None) -> Dict[str, Any]:
        """
        Evict historical revisions until at most `cap` remain.

        Args:
            logical_key: Document key
            cap: Maximum history size (defaults to MAX_BACKUPS)

        Returns:
            {"status": "success", "removed": n, "remaining": n}
        """
        _require_key(logical_key)
        cap = self.max_backups if cap is None else cap
        if cap < 0:
            raise BadRequestError("cap must not be negative")

        history = self.repository.list_history(logical_key)
        removed = []

        while len(history) > cap:
            victim = self._pick_victim(history)
            self.repository.delete(victim.key)
            history.remove(victim)
            removed.append(victim.key)

        if removed:
            logger.info(f"[PRUNE] {logical_key}: removed {len(removed)} revision(s) {removed}")

        return {
            "status": "success",
            "message": f"Removed {len(removed)} revisions" if removed else "Within limit",
            "removed": len(removed),
            "remaining": len(history),
        }

    # ==================== DEDUPLICATOR ====================

    def dedup(self, logical_key: str) -> Dict[str, Any]:
        """
        Remove unnamed revisions whose content duplicates an earlier one.

        Revisions are scanned by version ascending, so version 0 is seen
        first and is never removed. A named revision is always kept, and
        later unnamed copies of it are still removed.

        Returns:
            {"status": "success", "message", "removed": n, "remaining": n}
        """
        _require_key(logical_key)
        revisions = self.repository.load_all(logical_key)

        seen_hashes = set()
        duplicates = []

        for revision in revisions:
            digest = normalized_hash(revision.content)

            if revision.is_protected:
                seen_hashes.add(digest)
                continue

            if digest in seen_hashes:
                duplicates.append(revision)
            else:
                seen_hashes.add(digest)

        remaining = len(revisions) - len(duplicates)
        if not duplicates:
            return {
                "status": "success",
                "message": "No duplicate versions",
                "removed": 0,
                "remaining": remaining,
            }

        for revision in duplicates:
            self.repository.delete(revision.key)
            logger.info(f"[DEDUP] {logical_key}: removed duplicate {revision.key}")

        return {
            "status": "success",
            "message": f"Removed {len(duplicates)} duplicate versions",
            "removed": len(duplicates),
            "remaining": remaining,
        }

    # ==================== LISTING & PREVIEW ====================

    def list_versions(self, logical_key: str) -> Dict[str, Any]:
        """
        List the current revision followed by history, newest version first.

        `uploaded` prefers the stored `originalTime` over the store's own time.
        """
        _require_key(logical_key)
        versions = []

        current = self.repository.head_current(logical_key)
        if current is not None:
            versions.append(current.to_dict())

        history = self.repository.list_history(logical_key)
        for revision in sorted(history, key=lambda r: r.version, reverse=True):
            versions.append(revision.to_dict())

        logger.debug(f"[LIST] {logical_key}: {len(versions)} versions")
        return {
            "status": "success",
            "filename": logical_key,
            "totalVersions": len(versions),
            "versions": versions,
        }

    def preview(self, key: str) -> Dict[str, Any]:
        """Summary of one revision without returning its content."""
        obj = self.get_document(key)
        content = obj.text()

        return {
            "status": "success",
            "key": key,
            "uuid": obj.metadata.get(META_UUID) or None,
            "customName": obj.metadata.get(META_CUSTOM_NAME) or None,
            "size": obj.size,
            "uploaded": obj.metadata.get(META_ORIGINAL_TIME) or iso_timestamp(obj.uploaded),
            **extract_summary(content),
            "details": extract_details(content),
        }

    # ==================== RENAME & RESTORE ====================

    def rename(self, key: str, name: Optional[str]) -> Dict[str, Any]:
        """
        Set `customName` on one revision, which protects it from deletion.

        Raises:
            BadRequestError: If the name is missing or blank
            NotFoundError: If the key does not exist
        """
        _require_key(key)
        if not name or not name.strip():
            raise BadRequestError("Name required")

        obj = self.repository.get_object(key)
        if obj is None:
            raise NotFoundError("File not found")

        self.repository.update_metadata(obj, **{META_CUSTOM_NAME: name})
        logger.info(f"[RENAME] {key} -> {name!r}")
        return {"status": "success", "message": "Renamed", "customName": name}

    def restore(self, logical_key: str, version: int) -> Dict[str, Any]:
        """
        Make historical `version` the current content again.

        Runs the regular write path, so the replaced current is archived and
        an unchanged restore is skipped.
        """
        _require_key(logical_key)
        if version < 1:
            raise BadRequestError("version must be a positive integer")

        base, extension = split_key(logical_key)
        source_key = historical_key(base, version, extension)
        source = self.repository.get_object(source_key)
        if source is None:
            raise NotFoundError(f"Version {version} of {logical_key} not found")

        logger.info(f"[RESTORE] {source_key} -> {logical_key}")
        result = self.put_document(logical_key, source.text())
        result["restoredFrom"] = source_key
        return result
