"""检查点数据模型。"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from deeplife.models.profile import Profile


class Checkpoint(BaseModel):
    """某个年龄的完整档案快照，按 (profile_id, age) 查找。"""

    model_config = ConfigDict(frozen=True)

    checkpoint_id: str = Field(description="快照唯一标识")
    profile_id: str = Field(description="所属档案")
    age: int = Field(description="快照时的年龄")
    created_at: datetime = Field(default_factory=datetime.now, description="创建时间")
    snapshot: str = Field(description="序列化后的完整档案 JSON")

    def restore(self) -> Profile:
        return Profile.model_validate_json(self.snapshot)
