"""
compress 命令 — 从画像文件生成压缩提示。

输入文件是画像本身（JSON 或 YAML），也可以把画像放在 "profile" 键下，
并在同一文件中给出 "message" 以便自动判定交互类型。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from rich.panel import Panel
from rich.text import Text

from profile_forge.cli.utils import (
    create_allocation_table,
    create_console,
    create_forge_from_options,
    create_summary_panel,
    handle_profile_forge_error,
    load_json_or_yaml,
    print_error,
    print_success,
    print_warning,
)
from profile_forge.errors import ProfileForgeError
from profile_forge.models.record import CompressionResult

console = create_console()


def compress_command(
    input_file: str,
    interaction_type: str | None = None,
    complexity: float | None = None,
    message: str | None = None,
    model: str | None = None,
    token_budget: int | None = None,
    history_length: int = 0,
    strategy: str | None = None,
    policy: str | None = None,
    output: str | None = None,
    format: str = "rich",
    verbose: bool = False,
) -> None:
    """
    从画像文件生成压缩提示。

    输入文件格式示例::

        {
          "message": "Can you help me debug this function?",
          "profile": {
            "personality": {"dominant_traits": ["curious", "analytical"]},
            "communication": {"tone": "direct"}
          }
        }

    输出格式：
    - text: 只输出提示文本
    - json: 提示文本 + 完整元数据
    - rich: Rich 面板（默认）
    """
    try:
        data = load_json_or_yaml(input_file)
    except (FileNotFoundError, ValueError) as e:
        print_error(f"加载输入文件失败：{e}")

    profile: Any = data.get("profile", data)
    message = message or data.get("message")

    try:
        forge = create_forge_from_options(policy_path=policy, debug=verbose)
    except ProfileForgeError as e:
        handle_profile_forge_error(e)

    options: dict[str, Any] = {
        "model": model,
        "token_budget": token_budget,
        "history_length": history_length,
        "force_strategy": strategy,
    }
    if message:
        if interaction_type is not None:
            options["interaction_type"] = interaction_type
        if complexity is not None:
            options["complexity"] = complexity
        result = forge.compress_message(profile, message, **options)
    else:
        result = forge.compress(
            profile,
            interaction_type or "standard",
            complexity if complexity is not None else 5.0,
            **options,
        )

    if result.metadata.error:
        print_warning(f"压缩失败（{result.metadata.error_type}），已返回兜底提示。")

    if format == "text":
        _emit(result.prompt_text, output)
    elif format == "json":
        payload = {
            "prompt_text": result.prompt_text,
            "record_id": result.record_id,
            "metadata": result.metadata.model_dump(mode="json"),
        }
        _emit(json.dumps(payload, ensure_ascii=False, indent=2), output)
    elif format == "rich":
        _render_rich(result)
    else:
        print_error(f"不支持的输出格式：{format}")


def _emit(text: str, output_path: str | None) -> None:
    if output_path:
        Path(output_path).write_text(text, encoding="utf-8")
        print_success(f"已保存到 {output_path}")
    else:
        console.print(text, markup=False, highlight=False, soft_wrap=True)


def _render_rich(result: CompressionResult) -> None:
    meta = result.metadata
    summary = {
        "策略": meta.strategy,
        "模型": meta.model,
        "交互类型": f"{meta.interaction_type}（复杂度 {meta.complexity:g}）",
        "预算 token": meta.token_budget,
        "实际 token": meta.actual_tokens,
        "质量分": f"{meta.quality_score:.2f} / 目标 {meta.quality_target:.2f}",
        "效率": f"{meta.efficiency:.2f}",
        "压缩率": f"{meta.compression_ratio:.1%}",
        "迭代次数": meta.iterations,
        "耗时": f"{meta.processing_time_ms:.1f} ms",
    }
    console.print(create_summary_panel("压缩摘要", summary, border_style="green"))
    if meta.allocations:
        console.print(create_allocation_table(meta.allocations, meta.clusters_used))
    console.print(Panel(Text(result.prompt_text), title="提示片段", border_style="cyan"))
    if meta.fallback:
        print_warning("画像中没有可用信息，已使用兜底提示。")
