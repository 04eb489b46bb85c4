from .exporter import export_snapshot, get_export_stats
from .importer import (
    DATA_MAY_BE_INCOMPLETE_MESSAGE,
    DESTRUCTIVE_IMPORT_WARNING,
    NOTHING_CHANGED_MESSAGE,
    SnapshotImporter,
    import_snapshot,
)
from .validation import COLLECTIONS, validate_snapshot

__all__ = [
    "export_snapshot",
    "get_export_stats",
    "import_snapshot",
    "SnapshotImporter",
    "validate_snapshot",
    "COLLECTIONS",
    "DESTRUCTIVE_IMPORT_WARNING",
    "NOTHING_CHANGED_MESSAGE",
    "DATA_MAY_BE_INCOMPLETE_MESSAGE",
]
