"""Story persistence: local scene image cache and Supabase mirror."""

from .local_cache import LocalSceneCache, cache_key
from .remote_store import StorageUsage, SupabaseStoryStore, calculate_storage_usage
from .repository import StoryRepository

__all__ = [
    'LocalSceneCache',
    'cache_key',
    'StorageUsage',
    'SupabaseStoryStore',
    'calculate_storage_usage',
    'StoryRepository',
]
