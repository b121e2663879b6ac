"""
init 命令 — 初始化项目配置。

创建：
- profile_forge.yaml 策略文件（全部默认值，便于逐项调整）
- .profile_forge/profile_example.json 示例画像
"""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from profile_forge.cli.utils import create_console, print_success, print_warning
from profile_forge.config.schema import PolicyConfig

console = create_console()

_POLICY_HEADER = """\
# Profile Forge 策略配置
#
# 所有启发式数值（预算乘数、策略阈值、簇权重、异常阈值、学习率）都在这里定义。
# 删除任意字段即回退到内置默认值。

"""

EXAMPLE_PROFILE = {
    "message": "Can you compare these two approaches and explain the trade-offs?",
    "profile": {
        "personality": {
            "dominant_traits": ["curious", "analytical", "methodical"],
            "values": ["clarity", "autonomy"],
        },
        "communication": {"tone": "direct", "verbosity": "concise", "formality": "casual"},
        "current_state": {"mood": "focused", "energy": "high"},
        "context": {
            "current_moment": "debugging a technical design problem",
            "recent_topics": ["python", "system design", "caching"],
            "goals": ["ship the feature this week"],
        },
        "behavior": {
            "patterns": ["asks follow-up questions", "prefers examples"],
            "decision_style": "data-driven",
            "likely_next": "deep-dive-question",
        },
        "emotional": {"baseline": "calm", "recent_shifts": ["mild frustration"]},
        "cognitive": {"style": "systematic", "problem_solving": "decomposition"},
    },
}


def init_command(force: bool = False) -> None:
    """
    在当前目录生成默认策略文件和示例画像。

    使用 --force 可强制覆盖已存在的文件。
    """
    current_dir = Path.cwd()
    created_files: list[str] = []

    work_dir = current_dir / ".profile_forge"
    if not work_dir.exists():
        work_dir.mkdir(parents=True)
        created_files.append(".profile_forge/")

    policy_path = current_dir / "profile_forge.yaml"
    if policy_path.exists() and not force:
        print_warning("profile_forge.yaml 已存在，跳过（使用 --force 可强制覆盖）")
    else:
        _write_default_policy(policy_path)
        created_files.append("profile_forge.yaml")

    example_path = work_dir / "profile_example.json"
    if example_path.exists() and not force:
        print_warning(".profile_forge/profile_example.json 已存在，跳过")
    else:
        example_path.write_text(json.dumps(EXAMPLE_PROFILE, ensure_ascii=False, indent=2), encoding="utf-8")
        created_files.append(".profile_forge/profile_example.json")

    if created_files:
        print_success("项目初始化完成！已创建以下文件：")
        for f in created_files:
            console.print(f"  [cyan]+ {f}[/cyan]")
    else:
        console.print("[yellow]所有文件均已存在，无需创建。[/yellow]")

    console.print("\n[bold]下一步：[/bold]")
    console.print("  1. 编辑 [cyan]profile_forge.yaml[/cyan] 调整策略参数")
    console.print("  2. 试运行：[dim]profile-forge compress .profile_forge/profile_example.json[/dim]")
    console.print("  3. 在代码中使用：")
    console.print("     [dim]from profile_forge import ProfileForge[/dim]")
    console.print("     [dim]result = ProfileForge.from_policy().compress(profile, \"question\", 6)[/dim]")


def _write_default_policy(path: Path) -> None:
    """把 PolicyConfig 的默认值写成 YAML。"""
    data = PolicyConfig(name="my-project").model_dump(mode="json")
    body = yaml.safe_dump(data, allow_unicode=True, sort_keys=False)
    path.write_text(_POLICY_HEADER + body, encoding="utf-8")
