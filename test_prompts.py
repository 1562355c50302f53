"""测试提示词模板的加载与分层拼装。"""

from __future__ import annotations

from deeplife.agents.prompt_builder import build_yearly_prompt, format_user_context
from deeplife.prompts import build_layered_prompt, format_prompt


def test_format_prompt_accepts_name_placeholder(sample_profile):
    text = format_user_context(sample_profile)
    assert "姓名 林远" in text
    assert "坐标 杭州" in text
    assert "存款 20000" in text


def test_format_prompt_fills_template():
    assert "3" in format_prompt("task_skip_years", years=3)


def test_yearly_prompt_has_all_layers(sample_profile):
    prompt = build_yearly_prompt(sample_profile, 2024, "经济下行", "小挫折", "失败", "辞职")
    for title in ("Role", "World Context", "User Profile", "Task", "Constraints"):
        assert f"### {title} ###" in prompt
    assert "林远" in prompt
    assert "辞职" in prompt


def test_empty_layers_are_omitted():
    prompt = build_layered_prompt("", "", "", "任务", "约束")
    assert "### Role ###" not in prompt
    assert prompt.startswith("### Task ###")
