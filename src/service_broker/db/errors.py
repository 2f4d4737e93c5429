"""Record store error hierarchy.

``RecordStoreError`` is what the lifecycle orchestrators catch; every
store implementation raises it (or a subclass) for transport and write
failures. The Supabase errors keep httpx.Response objects (and keys) out of
exception text.
"""

from __future__ import annotations

from dataclasses import dataclass


class RecordStoreError(Exception):
    """Base error for any record store failure."""


class DuplicateRecordError(RecordStoreError):
    """A create hit a uniqueness constraint."""

    def __init__(self, table: str, key: str) -> None:
        self.table = table
        self.key = key
        super().__init__(f"{table}: record {key!r} already exists")


@dataclass(frozen=True, slots=True)
class SupabaseError(RecordStoreError):
    """PostgREST request failure."""

    status_code: int
    message: str
    code: str | None = None
    details: str | None = None
    hint: str | None = None

    def __str__(self) -> str:
        bits: list[str] = [f"SupabaseError(status={self.status_code})", self.message]
        if self.code:
            bits.append(f"code={self.code}")
        if self.details:
            bits.append(f"details={self.details}")
        return " ".join(bits)


class SupabaseAuthError(SupabaseError):
    """401/403: bad key or row-level security."""


class SupabaseNotFoundError(SupabaseError):
    """404: missing table or route (not a missing row)."""


class SupabaseConflictError(SupabaseError):
    """409: unique violation."""


class SupabaseUnavailableError(SupabaseError):
    """The PostgREST endpoint could not be reached."""
