"""回合图定义与编排。

年度回合：macro_event -> destiny -> evolve_npcs -> narrate -> advance -> choices -> memory
跳年回合：montage -> skip_advance -> choices -> memory

图只在档案副本上做纯变换，输出 (新档案, 副作用日志)；
写回存储由调用方在图跑完后一次性完成。
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from langgraph.graph import END, START, StateGraph
from pydantic import BaseModel, Field

from deeplife.agents.memory import MemoryConsolidator, create_memory_node
from deeplife.agents.narrator import (
    Narrator,
    create_choices_node,
    create_montage_node,
    create_narrate_year_node,
)
from deeplife.agents.npc import NPCEvolution, create_evolve_npcs_node
from deeplife.agents.prompt_builder import calendar_year
from deeplife.engine.destiny import DestinyEngine
from deeplife.engine.world_context import WorldContext
from deeplife.models.profile import LifeHistoryEntry, Profile
from deeplife.state.turn_state import TurnState

logger = logging.getLogger(__name__)

SKIP_EVENT_TYPE = "跳过"


class TurnResult(BaseModel):
    """一个回合的产出。"""

    profile: Profile = Field(description="回合结束后的新档案")
    log: list[str] = Field(default_factory=list, description="副作用日志")


def advance_age(profile: Profile, years: int = 1) -> Profile:
    """年龄 +years，精力每年 -1，下限 0。"""
    energy = max(0, profile.health_status.energy_level - years)
    health = profile.health_status.model_copy(update={"energy_level": energy})
    return profile.model_copy(
        update={"current_age": profile.current_age + years, "health_status": health}
    )


def append_history(profile: Profile, event_type: str) -> Profile:
    entry = LifeHistoryEntry(
        age=profile.current_age,
        event_description=profile.current_scenario.to_json(),
        event_type=event_type,
    )
    return profile.model_copy(update={"life_history": [*profile.life_history, entry]})


# ────────────────────────────────────────────
# 节点
# ────────────────────────────────────────────


def _create_macro_event_node(
    world: WorldContext, base_year: int
) -> Callable[[TurnState], dict[str, Any]]:
    def macro_event_node(state: TurnState) -> dict[str, Any]:
        year = calendar_year(state["profile"], base_year)
        macro_event = world.get_macro_event(year)
        return {"year": year, "macro_event": macro_event, "log": [f"{year} 年: {macro_event}"]}

    return macro_event_node


def _create_destiny_node(destiny: DestinyEngine) -> Callable[[TurnState], dict[str, Any]]:
    def destiny_node(state: TurnState) -> dict[str, Any]:
        rolled = destiny.trigger_random_event()
        outcome = destiny.determine_outcome(
            state["profile"], state.get("choice", ""), state.get("macro_event", "")
        )
        return {
            "destiny_type": rolled.destiny_type.value,
            "destiny_roll": rolled.roll,
            "outcome": outcome,
            "log": [f"命运: {rolled.destiny_type.value} ({rolled.roll:.4f})"],
        }

    return destiny_node


def _advance_node(state: TurnState) -> dict[str, Any]:
    profile = advance_age(state["profile"], 1)
    profile = append_history(profile, state.get("destiny_type", ""))
    return {
        "profile": profile,
        "log": [f"年龄 -> {profile.current_age}, 精力 {profile.health_status.energy_level}"],
    }


def _skip_advance_node(state: TurnState) -> dict[str, Any]:
    profile = state["profile"]
    for _ in range(state["years"]):
        profile = advance_age(profile, 1)
    profile = append_history(profile, SKIP_EVENT_TYPE)
    return {
        "profile": profile,
        "log": [f"跳过 {state['years']} 年, 年龄 -> {profile.current_age}"],
    }


# ────────────────────────────────────────────
# 图构建
# ────────────────────────────────────────────


def build_year_graph(
    world: WorldContext,
    destiny: DestinyEngine,
    npc_evolution: NPCEvolution,
    narrator: Narrator,
    consolidator: MemoryConsolidator,
    base_year: int = 2024,
) -> StateGraph:
    """构建年度回合图。"""
    workflow = StateGraph(TurnState)

    workflow.add_node("macro_event", _create_macro_event_node(world, base_year))
    workflow.add_node("destiny", _create_destiny_node(destiny))
    workflow.add_node("evolve_npcs", create_evolve_npcs_node(npc_evolution))
    workflow.add_node("narrate", create_narrate_year_node(narrator))
    workflow.add_node("advance", _advance_node)
    workflow.add_node("choices", create_choices_node(narrator))
    workflow.add_node("memory", create_memory_node(consolidator))

    workflow.add_edge(START, "macro_event")
    workflow.add_edge("macro_event", "destiny")
    workflow.add_edge("destiny", "evolve_npcs")
    workflow.add_edge("evolve_npcs", "narrate")
    workflow.add_edge("narrate", "advance")
    workflow.add_edge("advance", "choices")
    workflow.add_edge("choices", "memory")
    workflow.add_edge("memory", END)
    return workflow


def build_skip_graph(narrator: Narrator, consolidator: MemoryConsolidator) -> StateGraph:
    """构建跳年回合图：整段时间只调用一次蒙太奇叙事。"""
    workflow = StateGraph(TurnState)

    workflow.add_node("montage", create_montage_node(narrator))
    workflow.add_node("skip_advance", _skip_advance_node)
    workflow.add_node("choices", create_choices_node(narrator))
    workflow.add_node("memory", create_memory_node(consolidator))

    workflow.add_edge(START, "montage")
    workflow.add_edge("montage", "skip_advance")
    workflow.add_edge("skip_advance", "choices")
    workflow.add_edge("choices", "memory")
    workflow.add_edge("memory", END)
    return workflow


class TurnRunner:
    """持有编译后的两张回合图。"""

    def __init__(
        self,
        world: WorldContext,
        destiny: DestinyEngine,
        npc_evolution: NPCEvolution,
        narrator: Narrator,
        consolidator: MemoryConsolidator,
        base_year: int = 2024,
    ) -> None:
        self.year_graph = build_year_graph(
            world, destiny, npc_evolution, narrator, consolidator, base_year
        ).compile()
        self.skip_graph = build_skip_graph(narrator, consolidator).compile()

    def run_year(self, profile: Profile, choice: str) -> TurnResult:
        final = self.year_graph.invoke(
            {"profile": profile.model_copy(deep=True), "choice": choice, "log": []}
        )
        return TurnResult(profile=final["profile"], log=final.get("log", []))

    def run_skip(self, profile: Profile, years: int) -> TurnResult:
        final = self.skip_graph.invoke(
            {"profile": profile.model_copy(deep=True), "years": years, "log": []}
        )
        return TurnResult(profile=final["profile"], log=final.get("log", []))
