"""测试 NPC 演化与状态单调性。"""

from __future__ import annotations

import pytest

from conftest import ScriptedChatModel
from deeplife.agents.npc import NPCEvolution
from deeplife.agents.oracle import OracleClient
from deeplife.models.npc import NPC, NPCRelation, NPCStatus
from deeplife.state.npc_status import (
    KeywordStatusClassifier,
    StatusClassifier,
    apply_status_transition,
)


def _npc(status: NPCStatus = NPCStatus.HEALTHY, age: int = 50) -> NPC:
    return NPC(name="父亲", relation=NPCRelation.FATHER, age=age, status=status, intimacy=80)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("因病去世，享年七十", NPCStatus.DEAD),
        ("住院做了心脏手术", NPCStatus.SICK),
        ("在医院病逝", NPCStatus.DEAD),
        ("退休后迷上钓鱼", None),
        ("和几个死党去钓鱼了", None),
        ("老毛病又犯了，歇了两天", None),
        ("为了项目死磕到半夜", None),
        ("确诊了高血压", NPCStatus.SICK),
        ("突发心梗猝死", NPCStatus.DEAD),
        ("", None),
    ],
)
def test_keyword_classifier(text, expected):
    assert KeywordStatusClassifier().classify(text) == expected


def test_transitions_are_monotone():
    assert apply_status_transition(NPCStatus.HEALTHY, NPCStatus.SICK) == NPCStatus.SICK
    assert apply_status_transition(NPCStatus.SICK, NPCStatus.DEAD) == NPCStatus.DEAD
    assert apply_status_transition(NPCStatus.RETIRED, NPCStatus.DEAD) == NPCStatus.DEAD
    assert apply_status_transition(NPCStatus.SICK, NPCStatus.HEALTHY) == NPCStatus.SICK
    assert apply_status_transition(NPCStatus.DEAD, NPCStatus.SICK) == NPCStatus.DEAD
    assert apply_status_transition(NPCStatus.DEAD, NPCStatus.HEALTHY) == NPCStatus.DEAD
    assert apply_status_transition(NPCStatus.SICK, None) == NPCStatus.SICK


def test_evolve_ages_and_updates_every_npc(sample_profile):
    profile = sample_profile.model_copy(update={"npcs": [_npc(age=50), _npc(age=48)]})
    model = ScriptedChatModel(script=["住院观察了一周", "身体硬朗"])
    evolved = NPCEvolution(OracleClient(model)).evolve(profile)

    assert [n.age for n in evolved.npcs] == [51, 49]
    assert evolved.npcs[0].current_situation == "住院观察了一周"
    assert evolved.npcs[0].status == NPCStatus.SICK
    assert evolved.npcs[1].status == NPCStatus.HEALTHY
    # 原档案不被修改
    assert [n.age for n in profile.npcs] == [50, 48]


def test_prompt_mentions_npc_and_limit(sample_profile):
    profile = sample_profile.model_copy(update={"npcs": [_npc()]})
    model = ScriptedChatModel(script=["一切安好"])
    NPCEvolution(OracleClient(model)).evolve(profile)
    assert model.calls[0][0].content == "You are a NPC engine."
    prompt = model.calls[0][1].content
    assert "姓名=父亲" in prompt
    assert "20字以内" in prompt


def test_sick_npc_is_not_healed(sample_profile):
    profile = sample_profile.model_copy(update={"npcs": [_npc(NPCStatus.SICK)]})
    evolved = NPCEvolution(OracleClient(ScriptedChatModel(script=["精神不错"]))).evolve(profile)
    assert evolved.npcs[0].status == NPCStatus.SICK


def test_dead_npc_stays_dead(sample_profile):
    profile = sample_profile.model_copy(update={"npcs": [_npc(NPCStatus.DEAD)]})
    evolved = NPCEvolution(OracleClient(ScriptedChatModel(script=["康复出院"]))).evolve(profile)
    assert evolved.npcs[0].status == NPCStatus.DEAD
    assert evolved.npcs[0].age == 51


def test_oracle_failure_keeps_previous_situation(sample_profile):
    npc = _npc().model_copy(update={"current_situation": "在家养花"})
    profile = sample_profile.model_copy(update={"npcs": [npc]})
    model = ScriptedChatModel(script=[RuntimeError("x")] * 3)
    evolved = NPCEvolution(OracleClient(model)).evolve(profile)
    assert evolved.npcs[0].current_situation == "在家养花"
    assert evolved.npcs[0].age == 51


def test_custom_classifier_is_used(sample_profile):
    class AlwaysRich(StatusClassifier):
        def classify(self, situation):
            return NPCStatus.RICH

    profile = sample_profile.model_copy(update={"npcs": [_npc()]})
    evolution = NPCEvolution(OracleClient(ScriptedChatModel(script=["中了彩票"])), AlwaysRich())
    # RICH 与 HEALTHY 同级，不构成恶化
    assert evolution.evolve(profile).npcs[0].status == NPCStatus.HEALTHY
