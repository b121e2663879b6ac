"""
Profile Forge 快速上手示例。

演示最基本的用法：压缩画像、回填结果、查看指标与 A/B 实验。

运行方式：
    python examples/quickstart.py

无需 API Key，无需任何配置文件。
"""

from profile_forge import ProfileForge

PROFILE = {
    "personality": {
        "dominant_traits": ["curious", "analytical", "methodical"],
        "values": ["clarity", "autonomy"],
    },
    "communication": {"tone": "direct", "verbosity": "concise"},
    "current_state": {"mood": "focused", "energy": "high"},
    "context": {
        "current_moment": "debugging a caching layer",
        "recent_topics": ["python", "system design"],
    },
    "behavior": {"patterns": ["asks follow-up questions"], "decision_style": "data-driven"},
    "emotional": {"baseline": "calm"},
    "cognitive": {"style": "systematic", "problem_solving": "decomposition"},
}


def main() -> None:
    forge = ProfileForge()

    # ===== 场景 1：同一画像，不同交互 =====
    print("=" * 60)
    print("场景 1：同一画像在不同交互下的压缩结果")
    print("=" * 60)

    for interaction_type, complexity in [("greeting", 1), ("question", 6), ("analysis", 9)]:
        result = forge.compress(PROFILE, interaction_type, complexity, history_length=5)
        meta = result.metadata
        print(f"\n[{interaction_type} / 复杂度 {complexity}]")
        print(f"  策略：{meta.strategy}  预算：{meta.token_budget}  实际：{meta.actual_tokens}")
        print(f"  质量：{meta.quality_score:.2f}  效率：{meta.efficiency:.2f}")
        print(f"  提示：{result.prompt_text}")

        # 下游观测到回复质量后回填，驱动自适应调优
        forge.record_outcome(result, response_quality=0.9)

    # ===== 场景 2：按消息自动分类 =====
    print("\n" + "=" * 60)
    print("场景 2：按用户消息自动判定交互类型")
    print("=" * 60)

    message = "Can you compare these two designs and explain the trade-offs?"
    signals = forge.classify(message)
    print(f"\n消息：{message}")
    print(f"  类型：{signals.interaction_type.value}  复杂度：{signals.complexity:g}")
    result = forge.compress_message(PROFILE, message)
    print(f"  提示：{result.prompt_text}")

    # ===== 场景 3：A/B 实验 =====
    print("\n" + "=" * 60)
    print("场景 3：A/B 实验")
    print("=" * 60)

    forge.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], duration_ms=60_000)
    for index in range(20):
        forge.compress(PROFILE, "question", 6, experiment="tiers", participant_id=f"user-{index}")
    report = forge.end_experiment("tiers")
    print(f"\n胜出策略：{report.winner}（置信度 {report.confidence:.0%}）")
    for line in report.recommendations:
        print(f"  - {line}")

    # ===== 指标 =====
    metrics = forge.get_metrics("1h")
    print("\n" + "=" * 60)
    print(f"最近 1 小时：{metrics.total_compressions} 次压缩，平均质量 {metrics.avg_quality:.2f}")
    print(f"当前质量阈值：{forge.get_adaptive_thresholds().quality:.3f}")


if __name__ == "__main__":
    main()
