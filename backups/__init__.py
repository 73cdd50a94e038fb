"""
Versioned backup store for config documents.

Modules:
- hashing: normalized and raw content hashes
- repository: revision layout over an object store
- service: archive-on-write, retention, dedup, rename, restore
- backup_routes: HTTP surface
"""
