import logging
from supabase import create_client, Client
from socialgraph.config import settings
from socialgraph.database.base import EntityStore

logger = logging.getLogger(__name__)


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Used for engine writes."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


class StoreRegistry:
    """Process-wide entity store, chosen by settings.store_backend."""
    _store: EntityStore = None

    @classmethod
    def get_store(cls) -> EntityStore:
        if cls._store is None:
            if settings.uses_memory_store:
                from socialgraph.database.memory_store import MemoryEntityStore
                cls._store = MemoryEntityStore()
            else:
                from socialgraph.database.supabase_store import SupabaseEntityStore
                cls._store = SupabaseEntityStore(SupabaseClient.get_service_client())
            logger.info(f"Entity store initialised: {type(cls._store).__name__}")
        return cls._store

    @classmethod
    def reset_store(cls):
        cls._store = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_store() -> EntityStore:
    return StoreRegistry.get_store()
