"""人生档案数据模型。

Profile 是整个模拟的聚合根：NPC 与人生履历都归它所有，
每回合整体读出、整体写回。
"""

from __future__ import annotations

import json
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from deeplife.models.npc import NPC


class Difficulty(str, Enum):
    """游戏模式。"""
    EASY = "Easy"  # 爽文模式
    NORMAL = "Normal"  # 真实人生
    HARD = "Hard"  # 步步惊心
    HELL = "Hell"  # 绝望求生


class ProfileStage(str, Enum):
    """档案生命周期。"""
    DRAFTING = "DRAFTING"
    ANSWERING_PROBES = "ANSWERING_PROBES"
    ACTIVE = "ACTIVE"
    CONCLUDED = "CONCLUDED"


# ────────────────────────────────────────────
# 场景
# ────────────────────────────────────────────


class Scenario(BaseModel):
    """当前处境：三个字段永远存在。"""

    event: str = Field(default="", description="关键事件叙事")
    status_change: str = Field(default="", description="身体与精神状态的变化")
    relationship_change: str = Field(default="", description="人际关系的变迁")

    def to_json(self) -> str:
        return json.dumps(self.model_dump(), ensure_ascii=False)


class LifeHistoryEntry(BaseModel):
    """人生履历条目，一经追加不可修改。"""

    model_config = ConfigDict(frozen=True)

    age: int = Field(description="发生时的年龄")
    event_description: str = Field(description="事件描述（序列化后的场景 JSON）")
    event_type: str = Field(description="事件类型：命运判定名称或 '跳过'")
    impact_analysis: str = Field(default="", description="影响分析（可选）")


# ────────────────────────────────────────────
# 档案子结构
# ────────────────────────────────────────────


class BasicInfo(BaseModel):
    name: str = Field(default="无名氏", description="姓名")
    start_age: int = Field(default=18, ge=0, description="起始年龄")
    gender: str = Field(default="", description="性别")
    location: str = Field(default="", description="所在城市")
    education_level: str = Field(default="", description="学历")
    profession: str = Field(default="", description="职业")
    life_experiences: str = Field(default="", description="人生经历（自由文本）")


class EconomicStatus(BaseModel):
    savings: float = Field(default=0.0, description="存款")
    debt: float = Field(default=0.0, description="负债")
    monthly_income: float = Field(default=0.0, description="月收入")
    assets: list[str] = Field(default_factory=list, description="名下资产")


class FamilyBackground(BaseModel):
    parents_status: str = Field(default="", description="父母状况")
    economic_support: str = Field(default="", description="家庭经济支持")
    sibling_count: int = Field(default=0, ge=0, description="兄弟姐妹数量")
    family_assets: str = Field(default="", description="家庭资产")
    father_profession: str = Field(default="", description="父亲职业")
    mother_profession: str = Field(default="", description="母亲职业")


class HealthStatus(BaseModel):
    energy_level: int = Field(default=100, ge=0, le=100, description="精力值 0-100")
    chronic_conditions: list[str] = Field(default_factory=list, description="慢性病")
    family_history: list[str] = Field(default_factory=list, description="家族病史")


class SocialConnections(BaseModel):
    relationship_status: str = Field(default="单身", description="情感状态")
    social_circle_quality: str = Field(default="", description="社交圈质量")


# ────────────────────────────────────────────
# 聚合根
# ────────────────────────────────────────────


class Profile(BaseModel):
    """被模拟的人。"""

    id: str = Field(default="", description="档案唯一标识")
    difficulty: Difficulty = Field(default=Difficulty.NORMAL, description="游戏模式")
    stage: ProfileStage = Field(default=ProfileStage.DRAFTING, description="生命周期阶段")

    basic_info: BasicInfo = Field(default_factory=BasicInfo)
    economic_status: EconomicStatus = Field(default_factory=EconomicStatus)
    family_background: FamilyBackground = Field(default_factory=FamilyBackground)
    health_status: HealthStatus = Field(default_factory=HealthStatus)
    social_connections: SocialConnections = Field(default_factory=SocialConnections)

    personality_traits: dict[str, int] = Field(
        default_factory=dict,
        description="人格特质打分 0-100，如 {'Openness': 70, 'Resilience': 55}",
    )
    core_values: list[str] = Field(default_factory=list, description="核心价值观")
    inner_conflicts: list[str] = Field(default_factory=list, description="内心冲突")
    probes: list[str] = Field(default_factory=list, description="开局的灵魂拷问问题")

    current_age: int = Field(default=0, ge=0, description="当前年龄")
    current_scenario: Scenario = Field(default_factory=Scenario, description="当前处境")
    long_term_memory: str = Field(default="", description="滚动长期记忆")
    available_choices: list[str] = Field(default_factory=list, description="下一步可选行动")

    generation: int = Field(default=1, ge=1, description="第几代")
    parent_profile_id: str | None = Field(default=None, description="上一代档案 id（仅引用）")

    life_history: list[LifeHistoryEntry] = Field(default_factory=list, description="人生履历")
    npcs: list[NPC] = Field(default_factory=list, description="配角列表")

    @property
    def name(self) -> str:
        return self.basic_info.name
