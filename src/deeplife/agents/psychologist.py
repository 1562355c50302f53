"""心理侧写 Agent：开局的灵魂拷问与人格分析。"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from deeplife.agents.oracle import OracleClient, OracleRole, is_oracle_failure
from deeplife.agents.prompt_builder import (
    TRAIT_NAMES,
    build_probe_analysis_prompt,
    build_probes_prompt,
)
from deeplife.agents.utils import extract_json, parse_string_list
from deeplife.models.profile import Profile

logger = logging.getLogger(__name__)

FALLBACK_PROBES = [
    "如果你必须在金钱和自由之间二选一，你会选什么？为什么？",
    "现在的你是在追求梦想，还是在逃避现实？",
    "你认为什么样的人生才算没有虚度？",
]

DEFAULT_TRAITS = {"Openness": 50, "Resilience": 50}


class PersonalityAnalysis(BaseModel):
    personality_traits: dict[str, int] = Field(default_factory=dict, description="特质打分 0-100")
    core_values: list[str] = Field(default_factory=list, description="核心价值观")


def _clamp_score(value: object) -> int | None:
    try:
        score = int(round(float(value)))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return max(0, min(100, score))


class Psychologist:
    def __init__(self, oracle: OracleClient) -> None:
        self.oracle = oracle

    def generate_probes(self, profile: Profile) -> list[str]:
        """生成 3 个二选一问题，失败时使用固定问题。"""
        raw = self.oracle.call_structured(
            OracleRole.PSYCHOLOGIST, build_probes_prompt(profile), operation="generate_probes"
        )
        if is_oracle_failure(raw):
            logger.warning("灵魂拷问生成失败，使用兜底问题")
            return list(FALLBACK_PROBES)
        probes = parse_string_list(raw, keys=("probes", "questions"))[:3]
        return probes or list(FALLBACK_PROBES)

    def analyze(self, profile: Profile, answers: dict[str, str]) -> PersonalityAnalysis:
        """分析回答；解析失败时退回默认特质，不阻断开局。"""
        raw = self.oracle.call_structured(
            OracleRole.PSYCHOLOGIST,
            build_probe_analysis_prompt(profile, answers),
            operation="analyze_probes",
        )
        fallback = PersonalityAnalysis(personality_traits=dict(DEFAULT_TRAITS))
        if is_oracle_failure(raw):
            logger.warning("人格分析失败，使用默认特质")
            return fallback
        try:
            data = extract_json(raw)
        except ValueError:
            logger.warning("人格分析输出无法解析，使用默认特质")
            return fallback
        if not isinstance(data, dict):
            return fallback

        raw_traits = data.get("personalityTraits") or data.get("personality_traits") or {}
        traits: dict[str, int] = {}
        if isinstance(raw_traits, dict):
            for name, value in raw_traits.items():
                score = _clamp_score(value)
                if score is not None:
                    traits[str(name)] = score
        if not traits:
            logger.warning("人格分析缺少特质打分，使用默认特质")
            traits = dict(DEFAULT_TRAITS)

        raw_values = data.get("coreValues") or data.get("core_values") or []
        values = [str(v).strip() for v in raw_values if str(v).strip()] if isinstance(raw_values, list) else []
        unknown = set(traits) - set(TRAIT_NAMES)
        if unknown:
            logger.debug("人格分析包含额外特质: %s", ", ".join(sorted(unknown)))
        return PersonalityAnalysis(personality_traits=traits, core_values=values)
