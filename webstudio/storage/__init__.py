"""
Storage abstractions.

Integration points:
- ListStorage → the backing list store (SharePoint-style named lists)
- QueueStorage → the persistence outbox queue
"""

from webstudio.storage.base import (
    GlobalSettingKeys,
    ListStorage,
    Lists,
    QueueStorage,
    StorageProvider,
)
from webstudio.storage.local import (
    InMemoryListStorage,
    InMemoryQueueStorage,
    JsonFileListStorage,
    create_local_storage,
)

__all__ = [
    "GlobalSettingKeys",
    "ListStorage",
    "Lists",
    "QueueStorage",
    "StorageProvider",
    "InMemoryListStorage",
    "InMemoryQueueStorage",
    "JsonFileListStorage",
    "create_local_storage",
]
