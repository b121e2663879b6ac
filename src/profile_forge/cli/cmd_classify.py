"""
classify 命令 — 判定一条消息的交互类型与复杂度。
"""

from __future__ import annotations

import json

from rich.table import Table

from profile_forge.cli.utils import create_console
from profile_forge.routing import InteractionClassifier

console = create_console()


def classify_command(message: str, format: str = "rich") -> None:
    """输出交互类型、复杂度以及判定依据。"""
    signals = InteractionClassifier().classify(message)

    if format == "json":
        console.print(json.dumps(signals.to_dict(), ensure_ascii=False, indent=2), markup=False, soft_wrap=True)
        return

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="yellow")
    table.add_row("交互类型", signals.interaction_type.value)
    table.add_row("复杂度", f"{signals.complexity:g}")
    table.add_row("命中模式", signals.matched_pattern or "-")
    table.add_row("字数", str(signals.word_count))
    table.add_row("问号数", str(signals.question_count))
    table.add_row("代码块", str(signals.code_block_count))
    console.print(table)
