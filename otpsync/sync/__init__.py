"""Remote profile sync module for otpsync."""

from .profile_sync import (
    MERGE_DUPLICATES_PREFERENCE,
    SYNC_FIREBASE_USER_PATH,
    USER_PROFILES_PATH,
    BackendEndpoints,
    ProfileSyncClient,
    SyncError,
)

__all__ = [
    "MERGE_DUPLICATES_PREFERENCE",
    "SYNC_FIREBASE_USER_PATH",
    "USER_PROFILES_PATH",
    "BackendEndpoints",
    "ProfileSyncClient",
    "SyncError",
]
