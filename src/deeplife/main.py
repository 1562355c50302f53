"""DeepLife CLI 入口：逐年推进的人生模拟。"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from deeplife.agents.oracle import OracleClient
from deeplife.config.settings import ModelConfig, SimulationConfig, load_config
from deeplife.engine.orchestrator import SimulationOrchestrator
from deeplife.errors import DeepLifeError
from deeplife.models.profile import Profile
from deeplife.storage.checkpoint_store import CheckpointStore
from deeplife.storage.json_store import JsonCheckpointRepository, JsonProfileRepository

console = Console()
logger = logging.getLogger("deeplife")


def _init_model(model_config: ModelConfig):
    """根据配置初始化 LLM。"""
    provider = model_config.provider.lower()

    if provider == "deepseek":
        from deeplife.llm.deepseek import ChatDeepSeek

        return ChatDeepSeek(
            api_key=os.environ.get("DEEPSEEK_API_KEY", model_config.api_key),
            model=model_config.model_name or "deepseek-chat",
            api_url=model_config.api_url,
            temperature=model_config.temperature,
            timeout=model_config.timeout,
        )
    elif provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=model_config.model_name,
            temperature=model_config.temperature,
            timeout=model_config.timeout,
            max_retries=0,
        )
    raise ValueError(f"不支持的模型提供商: {model_config.provider}")


def _build_orchestrator(config: SimulationConfig) -> SimulationOrchestrator:
    model = _init_model(config.model)
    oracle = OracleClient(
        model,
        max_attempts=config.oracle.max_attempts,
        backoff_base=config.oracle.backoff_base,
    )
    profiles = JsonProfileRepository(config.data_dir)
    checkpoints = CheckpointStore(profiles, JsonCheckpointRepository(config.data_dir), config.checkpoint)
    return SimulationOrchestrator(oracle, profiles, checkpoints, config)


# ────────────────────────────────────────────
# 展示
# ────────────────────────────────────────────


def _show_profile(profile: Profile) -> None:
    scenario = profile.current_scenario
    body = (
        f"{scenario.event}\n\n"
        f"[dim]状态：{scenario.status_change}[/dim]\n"
        f"[dim]关系：{scenario.relationship_change}[/dim]"
    )
    console.print(Panel(
        body,
        title=f"{profile.name} · {profile.current_age} 岁 · 第 {profile.generation} 代",
        subtitle=f"{profile.stage.value} · 精力 {profile.health_status.energy_level}",
    ))
    if profile.npcs:
        table = Table(title="身边的人")
        table.add_column("姓名")
        table.add_column("关系")
        table.add_column("年龄", justify="right")
        table.add_column("状态")
        table.add_column("近况")
        for npc in profile.npcs:
            table.add_row(npc.name, npc.relation.value, str(npc.age), npc.status.value, npc.current_situation)
        console.print(table)
    for i, choice in enumerate(profile.available_choices, start=1):
        console.print(f"  [bold cyan]{i}.[/bold cyan] {choice}")


def _resolve_choice(profile: Profile, choice: str) -> str:
    """选项可以是序号，也可以是自由文本。"""
    if choice.isdigit() and 1 <= int(choice) <= len(profile.available_choices):
        return profile.available_choices[int(choice) - 1]
    return choice


# ────────────────────────────────────────────
# 子命令
# ────────────────────────────────────────────


def cmd_init(args: argparse.Namespace, orchestrator: SimulationOrchestrator) -> None:
    data = yaml.safe_load(Path(args.profile).read_text(encoding="utf-8")) or {}
    profile = orchestrator.create_profile(Profile.model_validate(data))
    console.print(f"[green]档案已创建: {profile.id}[/green]")


def cmd_probes(args: argparse.Namespace, orchestrator: SimulationOrchestrator) -> None:
    probes = orchestrator.generate_probes(args.profile_id)
    for i, probe in enumerate(probes, start=1):
        console.print(f"[bold]{i}.[/bold] {probe}")


def cmd_start(args: argparse.Namespace, orchestrator: SimulationOrchestrator) -> None:
    if args.answers:
        answers = yaml.safe_load(Path(args.answers).read_text(encoding="utf-8")) or {}
    else:
        profile = orchestrator.get_profile(args.profile_id)
        answers = {probe: Prompt.ask(probe) for probe in profile.probes}
    profile = orchestrator.start(args.profile_id, {str(k): str(v) for k, v in answers.items()})
    _show_profile(profile)


def cmd_next(args: argparse.Namespace, orchestrator: SimulationOrchestrator) -> None:
    profile = orchestrator.get_profile(args.profile_id)
    choice = args.choice or Prompt.ask("你的选择", default="1")
    result = orchestrator.simulate_year(args.profile_id, _resolve_choice(profile, choice))
    for line in result.log:
        logger.debug(line)
    _show_profile(result.profile)


def cmd_skip(args: argparse.Namespace, orchestrator: SimulationOrchestrator) -> None:
    result = orchestrator.skip_years(args.profile_id, args.years)
    _show_profile(result.profile)


def cmd_legacy(args: argparse.Namespace, orchestrator: SimulationOrchestrator) -> None:
    child = orchestrator.create_legacy(args.profile_id)
    console.print(f"[green]第 {child.generation} 代档案已创建: {child.id}[/green]")


def cmd_rollback(args: argparse.Namespace, orchestrator: SimulationOrchestrator) -> None:
    profile = orchestrator.rollback(args.profile_id, args.age)
    _show_profile(profile)


def cmd_history(args: argparse.Namespace, orchestrator: SimulationOrchestrator) -> None:
    table = Table(title="存档历史")
    table.add_column("年龄", justify="right")
    table.add_column("时间")
    table.add_column("检查点")
    for cp in orchestrator.get_history(args.profile_id):
        table.add_row(str(cp.age), cp.created_at.strftime("%Y-%m-%d %H:%M:%S"), cp.checkpoint_id)
    console.print(table)


def cmd_show(args: argparse.Namespace, orchestrator: SimulationOrchestrator) -> None:
    _show_profile(orchestrator.get_profile(args.profile_id))


_COMMANDS = {
    "init": cmd_init,
    "probes": cmd_probes,
    "start": cmd_start,
    "next": cmd_next,
    "skip": cmd_skip,
    "legacy": cmd_legacy,
    "rollback": cmd_rollback,
    "history": cmd_history,
    "show": cmd_show,
}


def main() -> None:
    """CLI 主入口。"""
    from dotenv import load_dotenv
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="deeplife",
        description="DeepLife - 大模型驱动的逐年人生模拟",
    )
    parser.add_argument("--config", "-c", default="", help="YAML 配置文件路径")
    parser.add_argument("--data", "-d", default="", help="数据目录（覆盖配置中的 data_dir）")
    parser.add_argument("--verbose", "-v", action="store_true", help="详细日志输出")
    subparsers = parser.add_subparsers(dest="command", help="可用命令")

    init_parser = subparsers.add_parser("init", help="从 YAML 创建新档案")
    init_parser.add_argument("profile", help="档案 YAML 路径")

    probes_parser = subparsers.add_parser("probes", help="生成开局的灵魂拷问")
    probes_parser.add_argument("profile_id")

    start_parser = subparsers.add_parser("start", help="回答拷问并开始人生")
    start_parser.add_argument("profile_id")
    start_parser.add_argument("--answers", "-a", default="", help="问题->回答 的 YAML 文件")

    next_parser = subparsers.add_parser("next", help="推进一年")
    next_parser.add_argument("profile_id")
    next_parser.add_argument("--choice", default="", help="选项序号或自由文本")

    skip_parser = subparsers.add_parser("skip", help="跳过若干年")
    skip_parser.add_argument("profile_id")
    skip_parser.add_argument("years", type=int)

    legacy_parser = subparsers.add_parser("legacy", help="结束本代，生成下一代")
    legacy_parser.add_argument("profile_id")

    rollback_parser = subparsers.add_parser("rollback", help="回滚到某个年龄的存档")
    rollback_parser.add_argument("profile_id")
    rollback_parser.add_argument("age", type=int)

    history_parser = subparsers.add_parser("history", help="查看存档历史")
    history_parser.add_argument("profile_id")

    show_parser = subparsers.add_parser("show", help="查看档案")
    show_parser.add_argument("profile_id")

    args = parser.parse_args()

    # 配置日志
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )

    handler = _COMMANDS.get(args.command or "")
    if handler is None:
        parser.print_help()
        return

    config = load_config(args.config or None)
    if args.data:
        config.data_dir = args.data
    try:
        handler(args, _build_orchestrator(config))
    except DeepLifeError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
