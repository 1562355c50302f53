"""档案与检查点存储。"""

from deeplife.storage.checkpoint_store import CheckpointStore
from deeplife.storage.json_store import JsonCheckpointRepository, JsonProfileRepository
from deeplife.storage.repository import (
    CheckpointRepository,
    InMemoryCheckpointRepository,
    InMemoryProfileRepository,
    ProfileRepository,
)

__all__ = [
    "CheckpointRepository",
    "CheckpointStore",
    "InMemoryCheckpointRepository",
    "InMemoryProfileRepository",
    "JsonCheckpointRepository",
    "JsonProfileRepository",
    "ProfileRepository",
]
