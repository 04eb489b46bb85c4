"""jobtracker: local job application tracker with JSON backup and restore.

Usage:
    from jobtracker import EntityStore, export_snapshot, import_snapshot
    store = EntityStore.from_settings()
    await store.create_all()
    doc = await export_snapshot(store)
    result = await import_snapshot(store, doc.to_wire())
"""

from .backup import export_snapshot, get_export_stats, import_snapshot
from .store import EntityStore

__all__ = ["EntityStore", "export_snapshot", "get_export_stats", "import_snapshot"]
