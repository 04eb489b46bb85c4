# backend/jobtracker/errors.py
from __future__ import annotations


class TrackerError(Exception):
    """Basklass för alla fel som biblioteket själv kastar."""


class NotFoundError(TrackerError, LookupError):
    pass


class InvalidSnapshotError(TrackerError, ValueError):
    """
    Exporten gick inte att läsa in. Kastas innan något i databasen rörts,
    så befintlig data finns kvar.
    """


class ExportError(TrackerError):
    pass


class ImportFailedError(TrackerError):
    """
    Lagringen felade mitt i en import. Databasen kan vara delvis tömd eller
    delvis ifylld, det finns ingen automatisk rollback.
    """
