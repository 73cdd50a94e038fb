"""
Data access layer for versioned documents.

The repository isolates object store calls from the archive/prune/dedup
logic. It knows how revisions of one logical document are laid out in the
store, and nothing about when they should be created or removed.

Repository methods:
- Current revision: get, head
- History: list_history, history_slots
- Whole document: load_all
- Raw objects: get_object, write, update_metadata, delete
"""

from typing import Dict, List, Optional, Set

from loguru import logger

from backups.models import Revision
from backups.utils import iso_timestamp
from storage.object_store.buckets import ObjectStore, StoredObject
from storage.object_store.versioning import parse_version, split_key


def _to_revision(obj: StoredObject, version: int, with_content: bool = False) -> Revision:
    return Revision(
        key=obj.key,
        version=version,
        size=obj.size,
        uploaded=iso_timestamp(obj.uploaded),
        metadata=dict(obj.metadata),
        content=obj.text() if with_content else None
    )


class RevisionRepository:
    """
    Repository for revisions of logical documents.

    All methods are single store calls or sequences of them; nothing here is
    atomic across keys.
    """

    def __init__(self, store: ObjectStore):
        self.store = store

    def get_object(self, key: str) -> Optional[StoredObject]:
        """Fetch any object (current or historical) with its body."""
        return self.store.get(key)

    def get_current(self, logical_key: str) -> Optional[Revision]:
        """
        Get version 0 of a logical document, content included.

        Args:
            logical_key: Document key, e.g. `config.json`

        Returns:
            Revision or None if the document has never been written
        """
        obj = self.store.get(logical_key)
        if obj is None:
            return None
        return _to_revision(obj, 0, with_content=True)

    def head_current(self, logical_key: str) -> Optional[Revision]:
        obj = self.store.head(logical_key)
        if obj is None:
            return None
        return _to_revision(obj, 0)

    def list_history(self, logical_key: str) -> List[Revision]:
        """
        List historical revisions (version >= 1) of a logical document.

        Objects that share the prefix but do not follow the
        `{base}{N}{ext}` naming are ignored.

        Args:
            logical_key: Document key

        Returns:
            Revisions without content, ordered by version ascending
        """
        base, extension = split_key(logical_key)
        history = []

        for obj in self.store.list(prefix=base):
            if obj.key == logical_key:
                continue
            version = parse_version(obj.key, base, extension)
            if version is None:
                continue
            history.append(_to_revision(obj, version))

        history.sort(key=lambda r: r.version)
        return history

    def history_slots(self, logical_key: str) -> Set[int]:
        return {r.version for r in self.list_history(logical_key)}

    def load_all(self, logical_key: str) -> List[Revision]:
        """
        Load every revision of a document with content, version 0 first.

        Historical objects that disappear between listing and fetching are
        skipped.
        """
        revisions = []

        current = self.get_current(logical_key)
        if current is not None:
            revisions.append(current)

        for entry in self.list_history(logical_key):
            obj = self.store.get(entry.key)
            if obj is None:
                logger.debug(f"[REPO] {entry.key} vanished during load")
                continue
            revisions.append(_to_revision(obj, entry.version, with_content=True))

        revisions.sort(key=lambda r: r.version)
        return revisions

    def write(self, key: str, content: str, metadata: Dict[str, str]) -> StoredObject:
        """Create or overwrite one revision object."""
        stored = self.store.put(key, content, metadata=metadata)
        logger.debug(f"[REPO] Wrote {key} ({stored.size} bytes)")
        return stored

    def update_metadata(self, obj: StoredObject, **updates: str) -> StoredObject:
        """Rewrite an object with unchanged bytes and merged metadata."""
        metadata = dict(obj.metadata)
        metadata.update(updates)
        return self.store.put(obj.key, obj.body, metadata=metadata)

    def delete(self, key: str) -> None:
        self.store.delete(key)
        logger.debug(f"[REPO] Deleted {key}")
