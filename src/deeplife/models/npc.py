"""NPC（配角）数据模型。"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class NPCRelation(str, Enum):
    """与主角的关系类别。"""
    FATHER = "FATHER"
    MOTHER = "MOTHER"
    PARTNER = "PARTNER"
    FRIEND = "FRIEND"
    CHILD = "CHILD"
    PARENT = "PARENT"  # 传承后的上一代
    OTHER = "OTHER"


class NPCStatus(str, Enum):
    """NPC 生存/境况状态。"""
    HEALTHY = "HEALTHY"
    SICK = "SICK"
    DEAD = "DEAD"
    RETIRED = "RETIRED"
    RICH = "RICH"
    POOR = "POOR"


class NPC(BaseModel):
    """档案拥有的配角，随档案一起存取。"""

    name: str = Field(description="姓名")
    relation: NPCRelation = Field(default=NPCRelation.OTHER, description="关系类别")
    age: int = Field(default=0, ge=0, description="年龄")
    status: NPCStatus = Field(default=NPCStatus.HEALTHY, description="当前状态")
    intimacy: int = Field(default=50, ge=0, le=100, description="亲密度 0-100")
    current_situation: str = Field(default="", description="近况（短句）")
