"""
Profile Forge 结构化异常体系。

所有异常遵循"三段式"规范：What / Why / How to fix。
"""

from profile_forge.errors.exceptions import (
    CompressionError,
    ConfigValidationError,
    ExperimentError,
    ExperimentNotFoundError,
    ModelNotFoundError,
    PipelineError,
    PipelineStageError,
    PolicyLoadError,
    ProfileForgeError,
    TokenizerError,
)

__all__ = [
    "CompressionError",
    "ConfigValidationError",
    "ExperimentError",
    "ExperimentNotFoundError",
    "ModelNotFoundError",
    "PipelineError",
    "PipelineStageError",
    "PolicyLoadError",
    "ProfileForgeError",
    "TokenizerError",
]
