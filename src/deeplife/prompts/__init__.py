"""提示词管理模块：将 agent 提示词从代码中分离。

所有提示词以 .txt 文件存放在本目录下，通过 load_prompt() 加载。
支持 {variable} 占位符，通过 format_prompt() 填充。
build_layered_prompt() 负责把五层内容拼装成最终提示词。
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Any

_PROMPTS_DIR = Path(__file__).parent

_LAYER_TITLES = ("Role", "World Context", "User Profile", "Task", "Constraints")


@functools.lru_cache(maxsize=64)
def load_prompt(name: str) -> str:
    """加载指定名称的提示词文件。

    Args:
        name: 提示词文件名（不含 .txt 后缀亦可）。

    Raises:
        FileNotFoundError: 提示词文件不存在时。
    """
    filename = name if name.endswith(".txt") else f"{name}.txt"
    filepath = _PROMPTS_DIR / filename
    if not filepath.exists():
        raise FileNotFoundError(f"提示词文件不存在: {filepath}")
    return filepath.read_text(encoding="utf-8").strip()


def format_prompt(prompt_name: str, /, **kwargs: Any) -> str:
    """加载并格式化提示词模板。"""
    template = load_prompt(prompt_name)
    return template.format(**kwargs)


def build_layered_prompt(
    role: str,
    world: str,
    user: str,
    task: str,
    constraints: str,
) -> str:
    """按 Role / World Context / User Profile / Task / Constraints 五层拼装。

    前三层为空时省略，Task 与 Constraints 总是出现。
    """
    sections: list[str] = []
    for title, body in zip(_LAYER_TITLES, (role, world, user, task, constraints)):
        if not body and title not in ("Task", "Constraints"):
            continue
        sections.append(f"### {title} ###\n{body}")
    return "\n\n".join(sections)


__all__ = ["build_layered_prompt", "format_prompt", "load_prompt"]
