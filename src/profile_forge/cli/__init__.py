"""
Profile Forge CLI — 命令行工具。

提供完整的 CLI 工具链，包括：
- init: 初始化项目配置
- validate: 校验策略文件和画像文件
- compress: 从画像文件生成压缩提示
- classify: 判定一条消息的交互类型与复杂度
- serve: HTTP API 服务器
"""

from profile_forge.cli.app import app, main

__all__ = ["app", "main"]
