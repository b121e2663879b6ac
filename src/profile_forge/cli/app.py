"""
Profile Forge CLI — 命令行工具入口。

提供 init / validate / compress / classify / serve / version 子命令。

用法::

    profile-forge --help
    profile-forge init
    profile-forge compress .profile_forge/profile_example.json
    profile-forge classify "Can you explain how this works?"
    profile-forge validate profile_forge.yaml
    profile-forge serve
"""

from __future__ import annotations

import typer

from profile_forge.cli.utils import create_console

app = typer.Typer(
    name="profile-forge",
    help="Profile Forge — 自适应行为画像压缩引擎 CLI",
    add_completion=False,
    no_args_is_help=True,
)

console = create_console()


# ============================================================
# 子命令注册
# ============================================================

@app.command(name="init")
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="强制覆盖已存在的文件",
    ),
) -> None:
    """在当前目录生成默认策略文件和示例画像。"""
    from profile_forge.cli.cmd_init import init_command
    init_command(force=force)


@app.command(name="validate")
def validate(
    path: str = typer.Argument(
        "profile_forge.yaml",
        help="YAML 策略文件或 JSON 画像文件路径",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="严格模式：将警告视为错误",
    ),
) -> None:
    """校验 YAML 策略文件或 JSON 画像文件。"""
    from profile_forge.cli.cmd_validate import validate_command
    validate_command(path=path, strict=strict)


@app.command(name="compress")
def compress(
    input_file: str = typer.Argument(
        ...,
        help="画像文件路径（JSON 或 YAML）",
    ),
    interaction_type: str | None = typer.Option(
        None,
        "--type",
        "-t",
        help="交互类型：greeting / question / analysis / emotional / creative / standard",
    ),
    complexity: float | None = typer.Option(
        None,
        "--complexity",
        "-c",
        min=0.0,
        max=10.0,
        help="复杂度 0-10",
    ),
    message: str | None = typer.Option(
        None,
        "--message",
        help="用户消息（自动判定交互类型与复杂度）",
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="目标模型（默认取策略中的 default_model）",
    ),
    token_budget: int | None = typer.Option(
        None,
        "--budget",
        "-b",
        min=0,
        help="强制 token 预算",
    ),
    history_length: int = typer.Option(
        0,
        "--history",
        min=0,
        help="当前对话轮数",
    ),
    strategy: str | None = typer.Option(
        None,
        "--strategy",
        "-s",
        help="强制策略：minimal / balanced / comprehensive",
    ),
    policy: str | None = typer.Option(
        None,
        "--policy",
        "-p",
        help="策略文件路径（默认自动搜索）",
    ),
    output: str | None = typer.Option(
        None,
        "--output",
        "-o",
        help="输出文件路径（仅 text / json 格式）",
    ),
    format: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="输出格式：text / json / rich",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="详细输出（显示调试信息）",
    ),
) -> None:
    """从画像文件生成压缩提示。"""
    from profile_forge.cli.cmd_compress import compress_command
    compress_command(
        input_file=input_file,
        interaction_type=interaction_type,
        complexity=complexity,
        message=message,
        model=model,
        token_budget=token_budget,
        history_length=history_length,
        strategy=strategy,
        policy=policy,
        output=output,
        format=format,
        verbose=verbose,
    )


@app.command(name="classify")
def classify(
    message: str = typer.Argument(..., help="用户消息"),
    format: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="输出格式：rich / json",
    ),
) -> None:
    """判定一条消息的交互类型与复杂度。"""
    from profile_forge.cli.cmd_classify import classify_command
    classify_command(message=message, format=format)


@app.command(name="serve")
def serve(
    host: str = typer.Option(
        "127.0.0.1",
        "--host",
        "-h",
        help="监听地址",
    ),
    port: int = typer.Option(
        8000,
        "--port",
        "-p",
        help="监听端口",
    ),
    policy: str | None = typer.Option(
        None,
        "--policy",
        help="策略文件路径",
    ),
    cors: bool = typer.Option(
        False,
        "--cors",
        help="启用 CORS（跨域资源共享）",
    ),
    tuning: bool = typer.Option(
        True,
        "--tuning/--no-tuning",
        help="是否运行后台调优任务（默认运行）",
    ),
) -> None:
    """启动 HTTP API 服务器。"""
    from profile_forge.cli.cmd_serve import serve_command
    serve_command(host=host, port=port, policy=policy, cors=cors, tuning=tuning)


@app.command(name="version")
def version() -> None:
    """显示版本信息。"""
    from profile_forge import __version__
    console.print(f"Profile Forge v{__version__}")


# ============================================================
# CLI 入口点
# ============================================================

def main() -> None:
    """CLI 入口点。"""
    app()


if __name__ == "__main__":
    main()
