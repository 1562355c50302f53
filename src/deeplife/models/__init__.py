"""Pydantic 数据模型。"""

from deeplife.models.checkpoint import Checkpoint
from deeplife.models.npc import NPC, NPCRelation, NPCStatus
from deeplife.models.profile import (
    BasicInfo,
    Difficulty,
    EconomicStatus,
    FamilyBackground,
    HealthStatus,
    LifeHistoryEntry,
    Profile,
    ProfileStage,
    Scenario,
    SocialConnections,
)

__all__ = [
    "BasicInfo",
    "Checkpoint",
    "Difficulty",
    "EconomicStatus",
    "FamilyBackground",
    "HealthStatus",
    "LifeHistoryEntry",
    "NPC",
    "NPCRelation",
    "NPCStatus",
    "Profile",
    "ProfileStage",
    "Scenario",
    "SocialConnections",
]
