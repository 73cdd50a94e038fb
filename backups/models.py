"""
Revision model for versioned documents.

A Revision is one stored object belonging to a logical document: version 0
is the current content, versions >= 1 are archived history.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# Metadata field names as persisted in the object store
META_UUID = "uuid"
META_ORIGINAL_TIME = "originalTime"
META_CONTENT_HASH = "contentHash"
META_CUSTOM_NAME = "customName"


@dataclass
class Revision:
    """One revision (current or historical) of a logical document."""
    key: str
    version: int
    size: int
    uploaded: str
    metadata: Dict[str, str] = field(default_factory=dict)
    content: Optional[str] = None

    @property
    def uuid(self) -> Optional[str]:
        return self.metadata.get(META_UUID) or None

    @property
    def custom_name(self) -> Optional[str]:
        return self.metadata.get(META_CUSTOM_NAME) or None

    @property
    def is_protected(self) -> bool:
        """Named revisions are never removed by dedup or ordinary pruning."""
        return bool(self.custom_name)

    @property
    def original_time(self) -> str:
        """Creation time of the content, falling back to the store upload time."""
        return self.metadata.get(META_ORIGINAL_TIME) or self.uploaded

    @property
    def label(self) -> str:
        if self.custom_name:
            return self.custom_name
        return "Current" if self.version == 0 else "Backup"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses"""
        return {
            "key": self.key,
            "version": self.version,
            "uuid": self.uuid,
            "customName": self.custom_name,
            "label": self.label,
            "size": self.size,
            "uploaded": self.original_time,
        }
