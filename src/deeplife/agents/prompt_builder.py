"""各类神谕任务的提示词组装。"""

from __future__ import annotations

import json

from deeplife.models.npc import NPC
from deeplife.models.profile import Difficulty, Profile
from deeplife.prompts import build_layered_prompt, format_prompt, load_prompt

TRAIT_NAMES = (
    "Openness",
    "Conscientiousness",
    "Extraversion",
    "Agreeableness",
    "Neuroticism",
    "Resilience",
    "Ambition",
)

_NARRATIVE_DIFFICULTY = {
    Difficulty.EASY: "【模式设定】当前为爽文模式（一路开挂）。请多给予好运、奇遇和顺遂，让主角光环闪耀。",
    Difficulty.NORMAL: "【模式设定】当前为常规模式（真实人生）。请保持现实主义的基调，有苦有甜，平淡中见真章。",
    Difficulty.HARD: "【模式设定】当前为困难模式（步步惊心）。请让生活充满挑战，挫折频繁，成功来之不易。",
    Difficulty.HELL: "【模式设定】当前为地狱模式（绝望求生）。请极尽残酷，每一次希望都要伴随着更大的绝望，生存是唯一目标。",
}

_JUDGE_DIFFICULTY = {
    Difficulty.EASY: "【模式设定】当前为爽文模式。判定标准宽松，容易获得成功，甚至意外之喜。",
    Difficulty.NORMAL: "【模式设定】当前为常规模式。判定标准基于概率和逻辑，公平公正。",
    Difficulty.HARD: "【模式设定】当前为困难模式。判定标准极其严苛，非大成功即为失败。",
    Difficulty.HELL: "【模式设定】当前为地狱模式。判定标准近乎绝望，除非掷出极高值，否则一律判定为灾难。",
}


def _or_unknown(value: str) -> str:
    return value or "未知"


def calendar_year(profile: Profile, base_year: int) -> int:
    """起始年龄对应 base_year，此后每长一岁加一年。"""
    return base_year + (profile.current_age - profile.basic_info.start_age)


def format_user_context(profile: Profile) -> str:
    """把档案渲染为 User Profile 层文本。"""
    info = profile.basic_info
    family = profile.family_background
    return format_prompt(
        "user_context",
        difficulty=profile.difficulty.value,
        name=info.name,
        age=profile.current_age,
        education=_or_unknown(info.education_level),
        profession=_or_unknown(info.profession),
        location=_or_unknown(info.location),
        life_experiences=info.life_experiences or "无",
        savings=profile.economic_status.savings,
        debt=profile.economic_status.debt,
        energy=profile.health_status.energy_level,
        parents_status=_or_unknown(family.parents_status),
        family_assets=_or_unknown(family.family_assets),
        father_profession=_or_unknown(family.father_profession),
        mother_profession=_or_unknown(family.mother_profession),
        traits=json.dumps(profile.personality_traits, ensure_ascii=False),
        values=json.dumps(profile.core_values, ensure_ascii=False),
        memory=profile.long_term_memory or "无",
    )


def _chinese_only() -> str:
    return load_prompt("guardrail_chinese_only")


def _json_object() -> str:
    return _chinese_only() + "\n" + load_prompt("guardrail_json_object")


def _json_array() -> str:
    return _chinese_only() + "\n" + load_prompt("guardrail_json_array")


# ────────────────────────────────────────────
# 开局
# ────────────────────────────────────────────


def build_opening_prompt(profile: Profile) -> str:
    return build_layered_prompt(
        load_prompt("persona_narrator"),
        "",
        format_user_context(profile),
        load_prompt("task_opening"),
        _json_object(),
    )


def build_probes_prompt(profile: Profile) -> str:
    return build_layered_prompt(
        load_prompt("persona_psychologist"),
        "",
        format_user_context(profile),
        load_prompt("task_probes"),
        _json_array(),
    )


def build_probe_analysis_prompt(profile: Profile, answers: dict[str, str]) -> str:
    answers_text = "".join(f"问题：{q}\n回答：{a}\n" for q, a in answers.items())
    return build_layered_prompt(
        load_prompt("persona_psychologist"),
        "用户刚刚完成了灵魂拷问。",
        format_user_context(profile) + "\n\n【用户回答】\n" + answers_text,
        format_prompt("task_probe_analysis", trait_names=", ".join(TRAIT_NAMES)),
        load_prompt("guardrail_json_object"),
    )


# ────────────────────────────────────────────
# 回合
# ────────────────────────────────────────────


def build_macro_event_prompt(year: int) -> str:
    return build_layered_prompt(
        load_prompt("persona_historian"),
        f"当前年份：{year}",
        "",
        load_prompt("task_macro_event"),
        _chinese_only(),
    )


def build_destiny_prompt(profile: Profile, action: str, macro_event: str, roll: float) -> str:
    return build_layered_prompt(
        load_prompt("persona_judge"),
        f"宏观事件：{macro_event}\n随机判定值(0-1)：{roll}",
        format_user_context(profile),
        format_prompt(
            "task_destiny",
            action=action,
            difficulty_instruction=_JUDGE_DIFFICULTY[profile.difficulty],
        ),
        _chinese_only(),
    )


def build_yearly_prompt(
    profile: Profile,
    year: int,
    macro_event: str,
    destiny_type: str,
    outcome: str,
    choice: str,
) -> str:
    world = (
        f"【世界层】\n年份：{year}\n宏观事件：{macro_event}\n"
        f"【判定层】\n命运类型：{destiny_type}\n判定结果：{outcome}\n用户抉择：{choice}"
    )
    return build_layered_prompt(
        load_prompt("persona_narrator"),
        world,
        format_user_context(profile),
        format_prompt(
            "task_yearly",
            difficulty_instruction=_NARRATIVE_DIFFICULTY[profile.difficulty],
        ),
        _json_object(),
    )


def build_skip_years_prompt(profile: Profile, years: int) -> str:
    return build_layered_prompt(
        load_prompt("persona_narrator"),
        f"时间跨度：未来 {years} 年",
        format_user_context(profile),
        format_prompt("task_skip_years", years=years),
        _json_object(),
    )


def build_choices_prompt(profile: Profile, scenario_text: str) -> str:
    return build_layered_prompt(
        load_prompt("persona_actuary"),
        f"当前剧情：{scenario_text}",
        format_user_context(profile),
        load_prompt("task_choices"),
        _json_array(),
    )


def build_npc_prompt(npc: NPC, profile: Profile, max_chars: int = 20) -> str:
    npc_info = (
        f"NPC资料：姓名={npc.name}, 关系={npc.relation.value}, "
        f"年龄={npc.age}, 状态={npc.status.value}"
    )
    return build_layered_prompt(
        load_prompt("persona_npc_simulator"),
        f"玩家当前处境：{profile.current_scenario.to_json()}",
        npc_info,
        load_prompt("task_npc"),
        _chinese_only() + f"\n限制：{max_chars}字以内。",
    )


def build_memory_prompt(profile: Profile, narrative: str, target_chars: int = 500) -> str:
    world = f"【已有记忆】\n{profile.long_term_memory or '（空）'}\n\n【本期经历】\n{narrative}"
    return build_layered_prompt(
        load_prompt("persona_biographer"),
        world,
        "",
        format_prompt("task_memory", target_chars=target_chars),
        _chinese_only(),
    )
