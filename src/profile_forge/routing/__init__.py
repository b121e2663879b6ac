"""
交互分类模块。
"""

from profile_forge.routing.classifier import InteractionClassifier, InteractionSignals

__all__ = [
    "InteractionClassifier",
    "InteractionSignals",
]
