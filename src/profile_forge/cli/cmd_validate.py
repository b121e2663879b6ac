"""
validate 命令 — 校验策略文件和画像输入文件。

支持：
- YAML 策略文件校验（Pydantic Schema + 字段级错误信息）
- JSON 画像文件校验（识别的分组、未知的顶层键）
"""

from __future__ import annotations

import sys
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel

from profile_forge.cli.utils import create_console, load_json_or_yaml, print_error, print_success
from profile_forge.config.loader import validate_policy_file
from profile_forge.models.context import CONTEXT_GROUPS, IntelligenceContext

console = create_console()


def validate_command(path: str = "profile_forge.yaml", strict: bool = False) -> None:
    """
    校验 YAML 策略文件或 JSON 画像文件。

    使用 --strict 可将警告也视为错误（CI 流程中推荐）。
    """
    path_obj = Path(path)

    if not path_obj.exists():
        print_error(f"文件不存在：{path}")

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        _validate_policy(path)
    elif suffix == ".json":
        _validate_profile(path, strict)
    else:
        console.print(f"[yellow]未知文件类型 {suffix}，尝试按策略文件校验...[/yellow]")
        _validate_policy(path)


def _validate_policy(path: str) -> None:
    console.print(f"[bold]校验策略文件：[/bold] {path}\n")

    errors = validate_policy_file(path)
    if errors:
        console.print(Panel(
            "\n".join(f"[red]X[/red] {escape(err)}" for err in errors),
            title=f"[bold red]校验失败（{len(errors)} 个错误）[/bold red]",
            border_style="red",
        ))
        sys.exit(1)

    print_success(f"{path} 校验通过")


def _validate_profile(path: str, strict: bool) -> None:
    console.print(f"[bold]校验画像文件：[/bold] {path}\n")

    try:
        data = load_json_or_yaml(path)
    except ValueError as e:
        print_error(f"校验失败：{e}")

    profile = data.get("profile", data)
    if not isinstance(profile, dict):
        print_error(f"profile 必须是对象，实际为 {type(profile).__name__}")

    context = IntelligenceContext.from_raw(profile)
    warnings: list[str] = []
    unknown = sorted(k for k in profile if k not in CONTEXT_GROUPS)
    if unknown:
        warnings.append(f"未识别的顶层键（会被忽略）：{', '.join(unknown)}")
    if context.is_empty:
        warnings.append("画像中没有任何可用分组，压缩结果将是兜底提示")

    if warnings:
        console.print(Panel(
            "\n".join(f"[yellow]![/yellow] {w}" for w in warnings),
            title=f"[bold yellow]警告（{len(warnings)} 条）[/bold yellow]",
            border_style="yellow",
        ))
        if strict:
            console.print("\n[bold red]严格模式下警告视为错误。[/bold red]")
            sys.exit(1)

    print_success(f"{path} 校验通过（分组：{', '.join(context.present_groups) or '无'}）")
