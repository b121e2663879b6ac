"""
CLI 工具函数 — Rich 美化、文件加载、通用辅助。

提供 CLI 各子命令共用的实用函数，包括：
- Rich Console 美化输出
- JSON/YAML 文件加载
- 错误/成功信息统一格式
- ProfileForge 实例创建
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from profile_forge.errors import ProfileForgeError
from profile_forge.facade import ProfileForge

# 全局 Console 实例
_console: Console | None = None


def create_console() -> Console:
    """
    创建或获取全局 Rich Console 实例。

    # [DX Decision] 全局单例 Console，确保所有 CLI 输出格式一致。
    """
    global _console
    if _console is None:
        _console = Console()
    return _console


def print_error(message: str, exit_code: int = 1) -> NoReturn:
    """打印错误信息并退出程序。"""
    console = create_console()
    # [DX Decision] 使用 X 而非 ✗，避免 Windows 终端编码问题
    console.print(f"[bold red]X 错误：[/bold red]{message}")
    sys.exit(exit_code)


def print_success(message: str) -> None:
    console = create_console()
    console.print(f"[bold green]OK[/bold green] {message}")


def print_warning(message: str) -> None:
    console = create_console()
    console.print(f"[bold yellow]![/bold yellow] {message}")


def format_token_count(count: int) -> str:
    """
    格式化 Token 数字为带千分位分隔符的字符串。

    示例::

        >>> format_token_count(128000)
        "128,000"
    """
    return f"{count:,}"


def load_json_or_yaml(file_path: str | Path) -> dict[str, Any]:
    """
    从文件加载 JSON 或 YAML 数据。

    根据文件扩展名自动判断格式，未知扩展名先尝试 JSON 再尝试 YAML。

    参数:
        file_path: 文件路径

    返回:
        解析后的字典

    异常:
        FileNotFoundError: 文件不存在
        ValueError: 文件格式无效
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"文件不存在：{path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValueError(f"无法读取文件 {path}: {e}") from e

    suffix = path.suffix.lower()

    try:
        if suffix == ".json":
            data = json.loads(content)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            try:
                data = json.loads(content)
            except json.JSONDecodeError:
                data = yaml.safe_load(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"JSON 格式错误：{e}") from e
    except yaml.YAMLError as e:
        raise ValueError(f"YAML 格式错误：{e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"文件根元素必须是字典，实际为 {type(data).__name__}")
    return data


def create_forge_from_options(
    policy_path: str | None = None,
    debug: bool = False,
) -> ProfileForge:
    """
    根据 CLI 参数创建 ProfileForge 实例。

    # [DX Decision] 集中处理 ProfileForge 初始化逻辑，
    # 避免在各个子命令中重复代码。

    异常:
        ProfileForgeError: 策略文件加载或校验失败
    """
    try:
        return ProfileForge.from_policy(Path(policy_path) if policy_path else None, debug=debug)
    except ProfileForgeError:
        raise
    except Exception as e:
        from profile_forge.errors import ConfigValidationError

        raise ConfigValidationError(
            what="创建 ProfileForge 实例失败。",
            why=str(e),
            how="请检查策略文件路径和参数是否正确。",
        ) from e


def create_summary_panel(
    title: str,
    content: dict[str, Any],
    border_style: str = "blue",
) -> Panel:
    """创建摘要信息面板（键名含 token 的整数按千分位格式化）。"""
    lines = []
    for key, value in content.items():
        if isinstance(value, int) and "token" in key.lower():
            value = format_token_count(value)
        lines.append(f"[bold]{key}:[/bold] {value}")

    return Panel(
        "\n".join(lines),
        title=title,
        border_style=border_style,
        expand=False,
    )


def create_allocation_table(allocations: dict[str, int], clusters_used: tuple[str, ...] | list[str]) -> Table:
    """
    创建簇分配表格。

    参数:
        allocations: 簇名 → 分配的 Token 数
        clusters_used: 出现在提示中的簇
    """
    table = Table(title="簇分配", show_header=True, header_style="bold cyan")
    table.add_column("簇", style="white")
    table.add_column("Token 数", justify="right", style="blue")
    table.add_column("已渲染", justify="center", style="green")

    for name, tokens in allocations.items():
        table.add_row(name, format_token_count(tokens), "OK" if name in clusters_used else "-")
    return table


def handle_profile_forge_error(error: ProfileForgeError) -> NoReturn:
    """
    统一处理 ProfileForgeError 异常。

    # [DX Decision] 三段式错误信息：What / Why / How
    # 直接显示 full_message，无需重新格式化
    """
    console = create_console()
    console.print("\n[bold red]X 错误[/bold red]\n")
    console.print(error.full_message)
    sys.exit(1)
