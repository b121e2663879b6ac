"""
压缩流水线模块。

标准阶段（profile_forge.pipeline.stages）在 create_default_pipeline() 中延迟导入。
"""

from profile_forge.pipeline.assemble import SECTION_LAYOUT, PromptAssembler
from profile_forge.pipeline.base import (
    Pipeline,
    PipelineContext,
    PipelineStage,
    create_default_pipeline,
)

__all__ = [
    "SECTION_LAYOUT",
    "Pipeline",
    "PipelineContext",
    "PipelineStage",
    "PromptAssembler",
    "create_default_pipeline",
]
