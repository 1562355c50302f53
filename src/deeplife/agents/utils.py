"""Agent 通用工具函数：文本提取与神谕输出修复。"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable

from langchain_core.messages import BaseMessage

from deeplife.models.profile import Scenario

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_LIST_PREFIX_RE = re.compile(r"^\s*(?:[-*•]|\d+[.、)）]|[（(]?\d+[)）])\s*")

SCENARIO_FIELDS = ("event", "status_change", "relationship_change")
_EVENT_ALIASES = ("narrative", "story", "content", "text")


def extract_text(content: str | list | Any) -> str:
    """从 LLM 响应中提取纯文本内容。

    不同模型提供商返回的 content 格式不同：
    - OpenAI / DeepSeek: 直接返回 str
    - 部分提供商: 返回 list[dict]，每个 dict 包含 'type' 和 'text'
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(item["text"])
            elif isinstance(item, str):
                parts.append(item)
        return "".join(parts)
    return str(content)


def extract_response_text(response: BaseMessage) -> str:
    """从 LLM 响应消息中提取纯文本。"""
    return extract_text(response.content)


def strip_code_fence(text: str) -> str:
    """去掉包裹在外层的 ``` 代码块标记。"""
    if not text:
        return ""
    match = _CODE_FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def extract_json(text: str) -> Any:
    """从 LLM 输出中提取 JSON 数据。

    支持从 markdown 代码块和纯文本中提取。
    """
    text = strip_code_fence(text)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # 兜底：尝试找到第一个 { 和最后一个 }
        first_brace = text.find("{")
        last_brace = text.rfind("}")
        if first_brace != -1 and last_brace > first_brace:
            try:
                return json.loads(text[first_brace : last_brace + 1])
            except json.JSONDecodeError:
                pass
        # 尝试找到第一个 [ 和最后一个 ]
        first_bracket = text.find("[")
        last_bracket = text.rfind("]")
        if first_bracket != -1 and last_bracket > first_bracket:
            return json.loads(text[first_bracket : last_bracket + 1])
        raise


def is_structured_json(text: str) -> bool:
    """严格判断：整段文本是否是合法的 JSON 数组或对象。"""
    try:
        value = json.loads(strip_code_fence(text))
    except (json.JSONDecodeError, TypeError):
        return False
    return isinstance(value, (dict, list))


# ────────────────────────────────────────────
# 场景修复
# ────────────────────────────────────────────


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _scenario_from_mapping(
    data: dict[str, Any],
    defaults: dict[str, str],
    fallback_event: str,
) -> Scenario:
    fields = {key: _as_text(data.get(key)) for key in SCENARIO_FIELDS}
    if not fields["event"]:
        for alias in _EVENT_ALIASES:
            alias_text = _as_text(data.get(alias))
            if alias_text:
                fields["event"] = alias_text
                break
    if not fields["event"]:
        # 结构合法但缺少叙事字段：保留原始对象，信息不丢失
        rest = {k: v for k, v in data.items() if k not in SCENARIO_FIELDS}
        fields["event"] = json.dumps(rest, ensure_ascii=False) if rest else fallback_event
    for key in ("status_change", "relationship_change"):
        if not fields[key]:
            fields[key] = defaults.get(key, "")
    return Scenario(**fields)


def _lenient_fields(text: str) -> dict[str, str]:
    """从残缺的 JSON 中逐个抠出字段（例如输出被截断）。"""
    found: dict[str, str] = {}
    for key in SCENARIO_FIELDS + _EVENT_ALIASES:
        match = re.search(rf'"{key}"\s*:\s*"((?:[^"\\]|\\.)*)', text)
        if not match:
            continue
        raw_value = match.group(1)
        try:
            value = json.loads(f'"{raw_value}"')
        except json.JSONDecodeError:
            value = raw_value
        found[key] = value.strip()
    return found


def repair_scenario(
    raw: str,
    defaults: dict[str, str] | None = None,
    fallback_event: str = "",
) -> Scenario:
    """把任意神谕输出修复为三字段场景，永不失败。

    依次尝试：严格 JSON 解析 -> 宽松的花括号定位与逐字段提取 -> 用原文合成。
    """
    defaults = defaults or {}
    text = strip_code_fence(raw or "")
    if not text:
        return _scenario_from_mapping({}, defaults, fallback_event)

    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return _scenario_from_mapping(data, defaults, fallback_event)
    except json.JSONDecodeError:
        pass

    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        try:
            data = json.loads(text[first_brace : last_brace + 1])
            if isinstance(data, dict):
                return _scenario_from_mapping(data, defaults, fallback_event)
        except json.JSONDecodeError:
            pass

    partial = _lenient_fields(text)
    if partial:
        logger.info("场景 JSON 残缺，已逐字段提取: %s", ", ".join(partial))
        return _scenario_from_mapping(partial, defaults, fallback_event)

    logger.warning("场景输出无法解析为 JSON，使用原文作为事件叙事")
    return _scenario_from_mapping({"event": text}, defaults, fallback_event)


# ────────────────────────────────────────────
# 列表解析
# ────────────────────────────────────────────


def parse_string_list(raw: str, keys: Iterable[str] = ()) -> list[str]:
    """把 JSON 数组（或含列表字段的对象、或逐行文本）解析为字符串列表。"""
    text = strip_code_fence(raw or "")
    if not text:
        return []
    try:
        data = extract_json(text)
    except (json.JSONDecodeError, ValueError):
        data = None

    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                data = data[key]
                break
        else:
            data = next((v for v in data.values() if isinstance(v, list)), None)

    if isinstance(data, list):
        items = [_as_text(item) for item in data]
    else:
        items = [_LIST_PREFIX_RE.sub("", line) for line in text.splitlines()]
        items = [item.strip().strip('"').strip() for item in items]
    return [item for item in items if item]


def parse_choices(raw: str, fallback: list[str], count: int = 3) -> list[str]:
    """解析行动选项，结果恰好 count 个，不足时用兜底选项补齐。"""
    choices: list[str] = []
    for item in parse_string_list(raw, keys=("choices", "options")):
        if item not in choices:
            choices.append(item)
        if len(choices) == count:
            return choices
    for item in fallback:
        if len(choices) == count:
            break
        if item not in choices:
            choices.append(item)
    while len(choices) < count:
        choices.append(fallback[len(choices) % len(fallback)] if fallback else "继续生活")
    return choices
