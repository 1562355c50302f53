"""NPC 状态分类与单调迁移规则。"""

from __future__ import annotations

from abc import ABC, abstractmethod

from deeplife.models.npc import NPCStatus
# 仅收录多字词，避免"死党"、"老毛病"被误判
# 只收录多字词：单字"死"/"病"会误伤"死党"、"老毛病"之类的日常表述
DEATH_KEYWORDS = ("去世", "死亡", "病逝", "离世", "过世", "身亡", "逝世", "猝死", "死于", "已故")
SICK_KEYWORDS = ("住院", "生病", "手术", "病倒", "重病", "确诊", "患病", "病危", "卧床")

# 数值越大越糟；RETIRED / RICH / POOR 与 HEALTHY 同级
_SEVERITY = {
    NPCStatus.HEALTHY: 0,
    NPCStatus.RETIRED: 0,
    NPCStatus.RICH: 0,
    NPCStatus.POOR: 0,
    NPCStatus.SICK: 1,
    NPCStatus.DEAD: 2,
}


class StatusClassifier(ABC):
    """根据近况文本判断状态。返回 None 表示文本中没有可判定的信号。"""

    @abstractmethod
    def classify(self, situation: str) -> NPCStatus | None:
        ...


class KeywordStatusClassifier(StatusClassifier):
    """关键词策略：先查死亡，再查疾病。"""

    def __init__(
        self,
        death_keywords: tuple[str, ...] = DEATH_KEYWORDS,
        sick_keywords: tuple[str, ...] = SICK_KEYWORDS,
    ) -> None:
        self.death_keywords = death_keywords
        self.sick_keywords = sick_keywords

    def classify(self, situation: str) -> NPCStatus | None:
        if not situation:
            return None
        if any(k in situation for k in self.death_keywords):
            return NPCStatus.DEAD
        if any(k in situation for k in self.sick_keywords):
            return NPCStatus.SICK
        return None


def apply_status_transition(current: NPCStatus, detected: NPCStatus | None) -> NPCStatus:
    """只允许向更糟的方向迁移：DEAD 永不改变，SICK 不会自动痊愈。"""
    if detected is None:
        return current
    if _SEVERITY[detected] > _SEVERITY[current]:
        return detected
    return current
