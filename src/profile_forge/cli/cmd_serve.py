"""
CLI 命令: serve — 启动 HTTP API 服务器。
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel
from rich.table import Table

from profile_forge.cli.utils import create_console

console = create_console()

ENDPOINTS = [
    ("POST", "/compress", "压缩画像"),
    ("POST", "/classify", "判定交互类型与复杂度"),
    ("POST", "/outcomes", "回填下游观测结果"),
    ("GET", "/metrics", "滚动窗口指标"),
    ("GET", "/quality-analysis", "质量分析"),
    ("GET", "/benchmark", "百分位基准"),
    ("POST", "/experiments", "创建并启动 A/B 实验"),
    ("GET", "/experiments", "列出实验"),
    ("GET", "/experiments/{name}/assign", "为参与者分配策略"),
    ("POST", "/experiments/{name}/end", "结束实验"),
    ("GET", "/optimization-status", "调优状态"),
    ("GET", "/thresholds", "自适应阈值"),
    ("GET", "/health", "健康检查"),
    ("GET", "/docs", "OpenAPI 文档（交互式）"),
]


def serve_command(
    host: str = "127.0.0.1",
    port: int = 8000,
    policy: str | None = None,
    cors: bool = False,
    tuning: bool = True,
) -> None:
    """
    启动 HTTP API 服务器。

    示例:

        # 使用默认配置启动
        profile-forge serve

        # 自定义端口和策略文件
        profile-forge serve --port 8080 --policy profile_forge.yaml

        # 关闭后台调优（只做压缩）
        profile-forge serve --no-tuning

    # [DX Decision] 提供合理的默认值（127.0.0.1:8000），
    # 同时允许通过参数灵活配置，满足不同部署场景。
    """
    from profile_forge import __version__

    console.print("\n[bold cyan]Profile Forge HTTP API Server[/bold cyan]")
    console.print(f"[dim]Version: {__version__}[/dim]\n")

    policy_path: Path | None = None
    if policy:
        policy_path = Path(policy)
        if not policy_path.exists():
            console.print(f"[red]错误: 策略文件不存在: {policy}[/red]")
            raise typer.Exit(1)

    config_table = Table(show_header=False, box=None, padding=(0, 2))
    config_table.add_column("Key", style="cyan")
    config_table.add_column("Value", style="yellow")
    config_table.add_row("监听地址", f"{host}:{port}")
    config_table.add_row("策略文件", policy or "[dim]使用内置默认策略[/dim]")
    config_table.add_row("CORS", "已启用" if cors else "已禁用")
    config_table.add_row("后台调优", "已启用" if tuning else "已禁用")
    console.print(Panel(config_table, title="[bold]配置信息[/bold]", border_style="blue"))

    endpoints_table = Table(show_header=True, box=None)
    endpoints_table.add_column("方法", style="green", width=8)
    endpoints_table.add_column("路径", style="cyan")
    endpoints_table.add_column("说明", style="white")
    for method, path, description in ENDPOINTS:
        endpoints_table.add_row(method, path, description)
    console.print(Panel(endpoints_table, title="[bold]可用端点[/bold]", border_style="green"))

    console.print("\n[bold green]服务器正在启动...[/bold green]")
    console.print(f"[dim]访问 http://{host}:{port}/docs 查看交互式 API 文档[/dim]\n")

    try:
        import uvicorn

        from profile_forge.cli.server import create_app

        app = create_app(
            policy_path=str(policy_path) if policy_path else None,
            enable_cors=cors,
            background_tuning=tuning,
        )
        uvicorn.run(app, host=host, port=port, log_level="info")
    except KeyboardInterrupt:
        console.print("\n[yellow]服务器已停止[/yellow]")
        raise typer.Exit(0) from None
    except Exception as e:
        console.print(f"\n[red]服务器启动失败: {e}[/red]")
        raise typer.Exit(1) from e
