"""JSON 目录存储：CLI 使用的落盘实现。

目录结构：
<root>/
├── profiles/                          # 每个档案一个 JSON
│   └── <profile_id>.json
└── checkpoints/                       # 每个档案一个子目录
    └── <profile_id>/
        └── <序号>_<checkpoint_id>.json
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from deeplife.errors import NotFoundError
from deeplife.models.checkpoint import Checkpoint
from deeplife.models.profile import Profile
from deeplife.storage.repository import CheckpointRepository, ProfileRepository

logger = logging.getLogger(__name__)


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(data, ensure_ascii=False, indent=2, default=str),
        encoding="utf-8",
    )


class JsonProfileRepository(ProfileRepository):
    def __init__(self, root: str | Path) -> None:
        self.profiles_dir = Path(root) / "profiles"
        self.profiles_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, profile_id: str) -> Path:
        return self.profiles_dir / f"{profile_id}.json"

    def get(self, profile_id: str) -> Profile:
        path = self._path(profile_id)
        if not path.exists():
            raise NotFoundError(f"档案不存在: {profile_id}")
        return Profile.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, profile: Profile) -> None:
        _write_json(self._path(profile.id), profile.model_dump(mode="json"))
        logger.debug("档案已保存: %s", profile.id)

    def delete(self, profile_id: str) -> None:
        path = self._path(profile_id)
        if not path.exists():
            raise NotFoundError(f"档案不存在: {profile_id}")
        path.unlink()

    def list_ids(self) -> list[str]:
        return sorted(p.stem for p in self.profiles_dir.glob("*.json"))


class JsonCheckpointRepository(CheckpointRepository):
    def __init__(self, root: str | Path) -> None:
        self.checkpoints_dir = Path(root) / "checkpoints"
        self.checkpoints_dir.mkdir(parents=True, exist_ok=True)

    def _profile_dir(self, profile_id: str) -> Path:
        return self.checkpoints_dir / profile_id

    def _files(self, profile_id: str) -> list[Path]:
        directory = self._profile_dir(profile_id)
        if not directory.exists():
            return []
        return sorted(directory.glob("*.json"))

    def add(self, checkpoint: Checkpoint) -> None:
        files = self._files(checkpoint.profile_id)
        seq = int(files[-1].name.split("_", 1)[0]) + 1 if files else 1
        path = self._profile_dir(checkpoint.profile_id) / f"{seq:06d}_{checkpoint.checkpoint_id}.json"
        _write_json(path, checkpoint.model_dump(mode="json"))

    def list_for_profile(self, profile_id: str) -> list[Checkpoint]:
        return [
            Checkpoint.model_validate_json(f.read_text(encoding="utf-8"))
            for f in self._files(profile_id)
        ]

    def remove(self, profile_id: str, checkpoint_id: str) -> None:
        for f in self._files(profile_id):
            if f.stem.split("_", 1)[1] == checkpoint_id:
                f.unlink()
