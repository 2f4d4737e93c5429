"""Record store adapters (Supabase PostgREST) and store errors."""

from .binding_repo import SupabaseBindingRepository
from .errors import (
    DuplicateRecordError,
    RecordStoreError,
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
    SupabaseUnavailableError,
)
from .instance_repo import SupabaseInstanceRepository
from .provision_request_repo import SupabaseProvisionRequestRepository
from .supabase_client import SupabaseClient

__all__ = [
    "DuplicateRecordError",
    "RecordStoreError",
    "SupabaseAuthError",
    "SupabaseBindingRepository",
    "SupabaseClient",
    "SupabaseConflictError",
    "SupabaseError",
    "SupabaseInstanceRepository",
    "SupabaseNotFoundError",
    "SupabaseProvisionRequestRepository",
    "SupabaseUnavailableError",
]
