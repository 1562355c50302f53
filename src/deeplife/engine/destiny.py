"""命运引擎：掷骰分类与行动结果判定。

分类只取决于骰子数值 r，阈值互不重叠：
    r < 0.001          黑天鹅-灾难
    0.001 <= r < 0.1   小挫折
    0.1 <= r <= 0.9    平淡
    0.9 < r <= 0.999   小确幸
    r > 0.999          黑天鹅-奇迹
"""

from __future__ import annotations

import logging
import random
from enum import Enum

from pydantic import BaseModel, Field

from deeplife.agents.oracle import OracleClient, OracleRole
from deeplife.agents.prompt_builder import build_destiny_prompt
from deeplife.models.profile import Profile

logger = logging.getLogger(__name__)


class DestinyType(str, Enum):
    """命运类型。"""
    RARE_DISASTER = "黑天鹅-灾难"
    MINOR_SETBACK = "小挫折"
    ORDINARY = "平淡"
    MINOR_FORTUNE = "小确幸"
    RARE_MIRACLE = "黑天鹅-奇迹"


class DestinyRoll(BaseModel):
    roll: float = Field(description="骰子数值 [0, 1)")
    destiny_type: DestinyType = Field(description="分类结果")


def classify_roll(r: float) -> DestinyType:
    """纯函数：把骰子数值映射为命运类型。"""
    if r < 0.001:
        return DestinyType.RARE_DISASTER
    if r < 0.1:
        return DestinyType.MINOR_SETBACK
    if r <= 0.9:
        return DestinyType.ORDINARY
    if r <= 0.999:
        return DestinyType.MINOR_FORTUNE
    return DestinyType.RARE_MIRACLE


class DestinyEngine:
    """持有独立的随机数生成器，两次掷骰互不影响。"""

    def __init__(self, oracle: OracleClient, rng: random.Random | None = None) -> None:
        self.oracle = oracle
        self.rng = rng or random.Random()

    def trigger_random_event(self) -> DestinyRoll:
        r = self.rng.random()
        result = DestinyRoll(roll=r, destiny_type=classify_roll(r))
        logger.debug("命运骰: %.4f -> %s", r, result.destiny_type.value)
        return result

    def determine_outcome(self, profile: Profile, action: str, macro_event: str) -> str:
        """裁判给出的判定文本，只作为叙事素材，不做机器解析。"""
        roll = self.rng.random()
        prompt = build_destiny_prompt(profile, action, macro_event, roll)
        return self.oracle.call(OracleRole.JUDGE, prompt, operation="determine_outcome")
