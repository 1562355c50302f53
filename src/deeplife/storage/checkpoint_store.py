"""检查点存储：快照、回滚与存档历史。

同一 (profile_id, age) 可能有多份快照，回滚时以最近写入的为准。
保留策略由 CheckpointPolicy 显式给出。
"""

from __future__ import annotations

import logging
import uuid

from deeplife.config.settings import CheckpointPolicy
from deeplife.errors import NotFoundError
from deeplife.models.checkpoint import Checkpoint
from deeplife.models.profile import Profile
from deeplife.storage.repository import CheckpointRepository, ProfileRepository

logger = logging.getLogger(__name__)


class CheckpointStore:
    def __init__(
        self,
        profiles: ProfileRepository,
        checkpoints: CheckpointRepository,
        policy: CheckpointPolicy | None = None,
    ) -> None:
        self.profiles = profiles
        self.checkpoints = checkpoints
        self.policy = policy or CheckpointPolicy()

    def create_checkpoint(self, profile: Profile) -> Checkpoint | None:
        """为档案当前年龄存一份快照；失败只记录日志，返回 None。"""
        try:
            checkpoint = Checkpoint(
                checkpoint_id=uuid.uuid4().hex,
                profile_id=profile.id,
                age=profile.current_age,
                snapshot=profile.model_dump_json(),
            )
            existing = self.checkpoints.list_for_profile(profile.id)
            # 先写入新快照再删旧快照，写入失败时旧快照仍在
            self.checkpoints.add(checkpoint)
            if self.policy.retention == "latest_per_age":
                for old in existing:
                    if old.age == checkpoint.age:
                        self.checkpoints.remove(profile.id, old.checkpoint_id)
                existing = [c for c in existing if c.age != checkpoint.age]
            self._prune(profile.id, len(existing) + 1, existing)
        except Exception as e:  # noqa: BLE001
            logger.error("创建检查点失败 (%s, %d 岁): %s", profile.id, profile.current_age, e)
            return None
        logger.info("检查点已创建: %s @ %d 岁", profile.id, checkpoint.age)
        return checkpoint

    def _prune(self, profile_id: str, total: int, older: list[Checkpoint]) -> None:
        limit = self.policy.max_per_profile
        if limit is None or total <= limit:
            return
        for old in older[: total - limit]:
            self.checkpoints.remove(profile_id, old.checkpoint_id)
            logger.debug("淘汰检查点: %s @ %d 岁", profile_id, old.age)

    def find(self, profile_id: str, target_age: int) -> Checkpoint:
        """按年龄精确查找，最近写入的优先。"""
        for checkpoint in reversed(self.checkpoints.list_for_profile(profile_id)):
            if checkpoint.age == target_age:
                return checkpoint
        raise NotFoundError(f"档案 {profile_id} 没有 {target_age} 岁的检查点")

    def rollback(self, profile_id: str, target_age: int) -> Profile:
        """用快照覆盖存储中的档案，并返回恢复后的档案。"""
        checkpoint = self.find(profile_id, target_age)
        restored = checkpoint.restore()
        self.profiles.save(restored)
        logger.info("档案 %s 已回滚到 %d 岁", profile_id, target_age)
        return restored

    def get_history(self, profile_id: str) -> list[Checkpoint]:
        """按年龄降序；同龄时最近写入的在前。"""
        ordered = list(reversed(self.checkpoints.list_for_profile(profile_id)))
        return sorted(ordered, key=lambda c: c.age, reverse=True)
