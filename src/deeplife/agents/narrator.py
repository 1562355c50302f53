"""叙事 Agent：开场旁白、年度叙事、跳年蒙太奇与行动选项。

所有叙事输出都经过 repair_scenario，保证 event / status_change /
relationship_change 三个字段始终存在。结构化校验失败的原始输出也会
交给 repair_scenario 尽力修复；只有传输或 HTTP 故障才使用兜底叙事。
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from deeplife.agents.oracle import OracleClient, OracleRole, is_oracle_failure
from deeplife.agents.prompt_builder import (
    build_choices_prompt,
    build_opening_prompt,
    build_skip_years_prompt,
    build_yearly_prompt,
)
from deeplife.agents.utils import parse_choices, repair_scenario
from deeplife.models.profile import Profile, Scenario
from deeplife.state.turn_state import TurnState

logger = logging.getLogger(__name__)

OPENING_DEFAULTS = {"status_change": "一切如常", "relationship_change": "无明显变化"}
OPENING_FALLBACK_EVENT = "故事从这里开始。"

YEARLY_DEFAULTS = {"status_change": "无明显变化", "relationship_change": "一切如常"}
YEARLY_FALLBACK_EVENT = "岁月无声，生活继续。"

MONTAGE_DEFAULTS = {"status_change": "岁月留痕", "relationship_change": "故人渐远"}
MONTAGE_FALLBACK_EVENT = "时光飞逝。"

FALLBACK_CHOICES = ["继续专注于工作", "多花时间陪陪家人", "尝试发展副业"]


class Narrator:
    def __init__(self, oracle: OracleClient) -> None:
        self.oracle = oracle

    def _scenario(
        self,
        raw: str,
        defaults: dict[str, str],
        fallback_event: str,
        operation: str,
    ) -> Scenario:
        if is_oracle_failure(raw):
            logger.warning("%s 叙事生成失败，使用兜底叙事: %s", operation, raw[:120])
            return repair_scenario("", defaults, fallback_event)
        return repair_scenario(raw, defaults, fallback_event)

    # ────────────────────────────────────────────
    # 叙事
    # ────────────────────────────────────────────

    def generate_opening(self, profile: Profile) -> Scenario:
        raw = self.oracle.call_structured(
            OracleRole.NARRATOR,
            build_opening_prompt(profile),
            operation="opening",
            keep_invalid=True,
        )
        return self._scenario(raw, OPENING_DEFAULTS, OPENING_FALLBACK_EVENT, "opening")

    def narrate_year(
        self,
        profile: Profile,
        year: int,
        macro_event: str,
        destiny_type: str,
        outcome: str,
        choice: str,
    ) -> Scenario:
        prompt = build_yearly_prompt(profile, year, macro_event, destiny_type, outcome, choice)
        raw = self.oracle.call_structured(
            OracleRole.NARRATOR, prompt, operation="narrate_year", keep_invalid=True
        )
        return self._scenario(raw, YEARLY_DEFAULTS, YEARLY_FALLBACK_EVENT, "narrate_year")

    def narrate_montage(self, profile: Profile, years: int) -> Scenario:
        raw = self.oracle.call_structured(
            OracleRole.NARRATOR,
            build_skip_years_prompt(profile, years),
            operation="narrate_montage",
            keep_invalid=True,
        )
        return self._scenario(raw, MONTAGE_DEFAULTS, MONTAGE_FALLBACK_EVENT, "narrate_montage")

    # ────────────────────────────────────────────
    # 选项
    # ────────────────────────────────────────────

    def generate_choices(self, profile: Profile, scenario_text: str) -> list[str]:
        """恰好返回 3 个选项。"""
        raw = self.oracle.call_structured(
            OracleRole.GAME_DESIGNER,
            build_choices_prompt(profile, scenario_text),
            operation="generate_choices",
        )
        if is_oracle_failure(raw):
            logger.warning("选项生成失败，使用兜底选项")
            return list(FALLBACK_CHOICES)
        return parse_choices(raw, FALLBACK_CHOICES)


# ────────────────────────────────────────────
# 回合图节点
# ────────────────────────────────────────────


def create_narrate_year_node(narrator: Narrator) -> Callable[[TurnState], dict[str, Any]]:
    """创建年度叙事节点。"""

    def narrate_year_node(state: TurnState) -> dict[str, Any]:
        profile = state["profile"]
        scenario = narrator.narrate_year(
            profile,
            state["year"],
            state.get("macro_event", ""),
            state.get("destiny_type", ""),
            state.get("outcome", ""),
            state.get("choice", ""),
        )
        return {
            "profile": profile.model_copy(update={"current_scenario": scenario}),
            "narrative_text": scenario.event,
            "log": [f"年度叙事: {scenario.event[:30]}"],
        }

    return narrate_year_node


def create_montage_node(narrator: Narrator) -> Callable[[TurnState], dict[str, Any]]:
    """创建跳年蒙太奇节点。"""

    def montage_node(state: TurnState) -> dict[str, Any]:
        profile = state["profile"]
        scenario = narrator.narrate_montage(profile, state["years"])
        return {
            "profile": profile.model_copy(update={"current_scenario": scenario}),
            "narrative_text": scenario.event,
            "log": [f"蒙太奇 {state['years']} 年: {scenario.event[:30]}"],
        }

    return montage_node


def create_choices_node(narrator: Narrator) -> Callable[[TurnState], dict[str, Any]]:
    """创建选项生成节点。"""

    def choices_node(state: TurnState) -> dict[str, Any]:
        profile = state["profile"]
        choices = narrator.generate_choices(profile, state.get("narrative_text", ""))
        return {
            "profile": profile.model_copy(update={"available_choices": choices}),
            "log": ["选项: " + " / ".join(choices)],
        }

    return choices_node
