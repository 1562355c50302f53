"""存储契约：档案与检查点都只按 id 整体读写。"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from deeplife.errors import NotFoundError
from deeplife.models.checkpoint import Checkpoint
from deeplife.models.profile import Profile


class ProfileRepository(ABC):
    @abstractmethod
    def get(self, profile_id: str) -> Profile:
        """按 id 读取整个档案；不存在时抛出 NotFoundError。"""
        raise NotImplementedError

    @abstractmethod
    def save(self, profile: Profile) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, profile_id: str) -> None:
        """删除档案，NPC 与人生履历随之删除；检查点不受影响。"""
        raise NotImplementedError

    @abstractmethod
    def list_ids(self) -> list[str]:
        raise NotImplementedError


class CheckpointRepository(ABC):
    @abstractmethod
    def add(self, checkpoint: Checkpoint) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_for_profile(self, profile_id: str) -> list[Checkpoint]:
        """按写入顺序返回（最早的在前）。"""
        raise NotImplementedError

    @abstractmethod
    def remove(self, profile_id: str, checkpoint_id: str) -> None:
        raise NotImplementedError


# ────────────────────────────────────────────
# 内存实现（测试与单进程使用）
# ────────────────────────────────────────────


class InMemoryProfileRepository(ProfileRepository):
    """以 JSON 文本保存，读写都是独立副本。"""

    def __init__(self) -> None:
        self._profiles: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, profile_id: str) -> Profile:
        with self._lock:
            raw = self._profiles.get(profile_id)
        if raw is None:
            raise NotFoundError(f"档案不存在: {profile_id}")
        return Profile.model_validate_json(raw)

    def save(self, profile: Profile) -> None:
        with self._lock:
            self._profiles[profile.id] = profile.model_dump_json()

    def delete(self, profile_id: str) -> None:
        with self._lock:
            if self._profiles.pop(profile_id, None) is None:
                raise NotFoundError(f"档案不存在: {profile_id}")

    def list_ids(self) -> list[str]:
        with self._lock:
            return list(self._profiles)


class InMemoryCheckpointRepository(CheckpointRepository):
    def __init__(self) -> None:
        self._checkpoints: dict[str, list[Checkpoint]] = {}
        self._lock = threading.Lock()

    def add(self, checkpoint: Checkpoint) -> None:
        with self._lock:
            self._checkpoints.setdefault(checkpoint.profile_id, []).append(checkpoint)

    def list_for_profile(self, profile_id: str) -> list[Checkpoint]:
        with self._lock:
            return list(self._checkpoints.get(profile_id, []))

    def remove(self, profile_id: str, checkpoint_id: str) -> None:
        with self._lock:
            items = self._checkpoints.get(profile_id, [])
            self._checkpoints[profile_id] = [c for c in items if c.checkpoint_id != checkpoint_id]
