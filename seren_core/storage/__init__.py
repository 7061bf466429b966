from seren_core.storage.base import ChangeListener, PersistentStore, Unsubscribe
from seren_core.storage.memory_store import MemoryStore
from seren_core.storage.redis_store import RedisStore

__all__ = ["ChangeListener", "PersistentStore", "Unsubscribe", "MemoryStore", "RedisStore"]
