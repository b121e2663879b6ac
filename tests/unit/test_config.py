"""
配置模块单元测试 — 测试策略 Schema、YAML 加载与模型注册表。

覆盖范围:
- config/schema.py: PolicyConfig 及所有子配置的校验规则
- config/loader.py: load_policy(), validate_policy_file(), 深度合并
- config/defaults.py: resolve_model(), register_model(), list_models()
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from profile_forge.config import defaults
from profile_forge.config.defaults import list_models, register_model, resolve_model
from profile_forge.config.loader import (
    POLICY_ENV_VAR,
    discover_policy_path,
    load_policy,
    merge_layers,
    validate_policy_file,
)
from profile_forge.config.schema import (
    AllocationConfig,
    AnalyticsConfig,
    BudgetConfig,
    ClusteringConfig,
    CompressConfig,
    PolicyConfig,
    QualityConfig,
    TuningConfig,
)
from profile_forge.errors import ConfigValidationError, ModelNotFoundError, PolicyLoadError
from profile_forge.models.budget import ModelProfile


@pytest.fixture
def policy_file(tmp_path: Path) -> Path:
    path = tmp_path / "policy.yaml"
    path.write_text(
        """
version: "1.0"
name: test-policy
budget:
  default_model: claude-3
allocation:
  minimal_below: 40
  comprehensive_above: 160
models:
  My-Model:
    max_context_tokens: 32000
    optimal_tokens: 120
""",
        encoding="utf-8",
    )
    return path


# === Schema 测试 ===


class TestPolicyConfig:
    """PolicyConfig 默认值与模型段测试。"""

    def test_defaults(self) -> None:
        """测试空配置即可使用。"""
        policy = PolicyConfig()
        assert policy.budget.default_model == "gpt-4o"
        assert policy.allocation.minimal_below == 50
        assert policy.allocation.comprehensive_above == 150
        assert policy.compress.tokenizer == "char"
        assert policy.quality.max_iterations == 3
        assert policy.analytics.default_window == "1h"
        assert policy.tuning.learning_rate == 0.1

    def test_model_profiles_lowercased(self) -> None:
        """测试自定义模型名统一转为小写。"""
        policy = PolicyConfig(models={"My-Model": {"max_context_tokens": 32000, "optimal_tokens": 120}})
        profiles = policy.model_profiles()
        assert list(profiles) == ["my-model"]
        assert profiles["my-model"].optimal_tokens == 120

    def test_invalid_model_profile(self) -> None:
        """测试非法的模型画像被拒绝。"""
        with pytest.raises(ValidationError):
            PolicyConfig(models={"bad": {"max_context_tokens": 1000, "optimal_tokens": 0}})

    def test_default_tables_are_copies(self) -> None:
        """测试修改配置实例不影响默认查找表。"""
        config = BudgetConfig()
        config.interaction_multipliers["greeting"] = 9.0
        assert defaults.INTERACTION_MULTIPLIERS["greeting"] == 0.3


class TestSubConfigValidation:
    """各子配置的校验规则。"""

    def test_strategy_thresholds_order(self) -> None:
        """测试 minimal_below 必须小于 comprehensive_above。"""
        with pytest.raises(ValidationError, match="minimal_below"):
            AllocationConfig(minimal_below=200, comprehensive_above=150)

    def test_unknown_cluster_in_weights(self) -> None:
        """测试策略权重中的未知簇。"""
        with pytest.raises(ValidationError, match="未知簇"):
            AllocationConfig(strategy_weights={"balanced": {"mystery": 0.5}})

    def test_weight_out_of_range(self) -> None:
        """测试权重超出 [0, 1]。"""
        with pytest.raises(ValidationError):
            AllocationConfig(strategy_weights={"balanced": {"core": 1.5}})

    def test_unknown_strategy_in_exclusions(self) -> None:
        """测试排除列表中的未知策略。"""
        with pytest.raises(ValidationError, match="excluded_clusters"):
            AllocationConfig(excluded_clusters={"turbo": ["core"]})

    def test_clustering_tables(self) -> None:
        """测试簇优先级表的取值范围。"""
        with pytest.raises(ValidationError, match="base_priority"):
            ClusteringConfig(base_priority={"core": 1.5})

    def test_tokenizer_mode(self) -> None:
        """测试只接受 char / auto。"""
        assert CompressConfig(tokenizer="auto").tokenizer == "auto"
        with pytest.raises(ValidationError, match="tokenizer"):
            CompressConfig(tokenizer="bpe")

    def test_tier_order(self) -> None:
        """测试 ultra 边界不能大于 standard 边界。"""
        with pytest.raises(ValidationError):
            CompressConfig(ultra_max_tokens=60, standard_max_tokens=50)

    def test_quality_ranges(self) -> None:
        """测试理想长度区间。"""
        with pytest.raises(ValidationError, match="ideal_min_chars"):
            QualityConfig(ideal_min_chars=900)

    def test_window_name(self) -> None:
        """测试默认窗口名。"""
        with pytest.raises(ValidationError, match="default_window"):
            AnalyticsConfig(default_window="2w")

    def test_tuning_bounds(self) -> None:
        """测试阈值上下界与初始值。"""
        with pytest.raises(ValidationError, match="budget_scale_bounds"):
            TuningConfig(budget_scale_bounds=(1.5, 0.5))
        with pytest.raises(ValidationError, match="initial_quality"):
            TuningConfig(initial_quality=0.99)

    def test_budget_multipliers(self) -> None:
        """测试交互类型乘数必须为正数。"""
        with pytest.raises(ValidationError, match="greeting"):
            BudgetConfig(interaction_multipliers={"greeting": 0.0})

    def test_history_turns(self) -> None:
        """测试短对话轮数不能大于长对话轮数。"""
        with pytest.raises(ValidationError, match="short_history_turns"):
            BudgetConfig(short_history_turns=20, long_history_turns=10)


# === load_policy() 测试 ===


class TestLoadPolicy:
    """load_policy() 函数测试。"""

    def test_load_from_yaml(self, policy_file: Path) -> None:
        """测试从 YAML 文件加载策略。"""
        policy = load_policy(policy_file)
        assert policy.name == "test-policy"
        assert policy.budget.default_model == "claude-3"
        assert policy.allocation.minimal_below == 40
        assert "my-model" in policy.model_profiles()

    def test_missing_file(self, tmp_path: Path) -> None:
        """测试文件不存在。"""
        with pytest.raises(PolicyLoadError, match="不存在") as exc_info:
            load_policy(tmp_path / "missing.yaml")
        assert exc_info.value.file_path.endswith("missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """测试 YAML 语法错误。"""
        path = tmp_path / "broken.yaml"
        path.write_text("budget: [unclosed", encoding="utf-8")
        with pytest.raises(PolicyLoadError, match="YAML"):
            load_policy(path)

    def test_non_mapping_root(self, tmp_path: Path) -> None:
        """测试根元素不是字典。"""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(PolicyLoadError, match="字典"):
            load_policy(path)

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        """测试空文件等同于默认配置。"""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_policy(path) == PolicyConfig()

    def test_validation_error_is_field_level(self, tmp_path: Path) -> None:
        """测试校验错误精确到字段。"""
        path = tmp_path / "bad.yaml"
        path.write_text("tuning:\n  learning_rate: 5\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError) as exc_info:
            load_policy(path)
        assert exc_info.value.field_path == "tuning.learning_rate"
        assert exc_info.value.config_path == str(path)
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_overrides_deep_merge(self, policy_file: Path) -> None:
        """测试运行时覆盖只替换指定字段。"""
        policy = load_policy(policy_file, overrides={"budget": {"max_context_fraction": 0.2}})
        assert policy.budget.default_model == "claude-3"
        assert policy.budget.max_context_fraction == 0.2

    def test_auto_discovery(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """测试在当前目录自动发现策略文件。"""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(POLICY_ENV_VAR, raising=False)
        (tmp_path / "profile_forge.yaml").write_text("name: discovered\n", encoding="utf-8")
        assert load_policy().name == "discovered"

    def test_no_file_uses_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """测试没有策略文件时使用默认值。"""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(POLICY_ENV_VAR, raising=False)
        assert load_policy().name == "default"

    def test_env_var_takes_precedence(
        self, policy_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """测试环境变量指定的文件优先于当前目录。"""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "profile_forge.yaml").write_text("name: local\n", encoding="utf-8")
        monkeypatch.setenv(POLICY_ENV_VAR, str(policy_file))
        assert discover_policy_path() == policy_file
        assert load_policy().name == "test-policy"


class TestMergeLayers:
    """merge_layers() 测试。"""

    def test_nested_merge(self) -> None:
        """测试嵌套映射递归合并，其余键被取代。"""
        base = {"budget": {"default_model": "gpt-4", "max_context_fraction": 0.1}, "name": "a"}
        merged = merge_layers(base, {"budget": {"default_model": "claude-3"}, "name": "b"})
        assert merged == {"budget": {"default_model": "claude-3", "max_context_fraction": 0.1}, "name": "b"}
        assert base["budget"]["default_model"] == "gpt-4"

    def test_non_mapping_replaces(self) -> None:
        """测试类型不同时直接替换。"""
        assert merge_layers({"models": {"x": 1}}, {"models": None}) == {"models": None}


class TestValidatePolicyFile:
    """validate_policy_file() 测试。"""

    def test_valid(self, policy_file: Path) -> None:
        """测试合法文件返回空列表。"""
        assert validate_policy_file(policy_file) == []

    def test_invalid(self, tmp_path: Path) -> None:
        """测试非法文件返回错误信息而不抛出。"""
        path = tmp_path / "bad.yaml"
        path.write_text("allocation:\n  minimal_below: 500\n", encoding="utf-8")
        errors = validate_policy_file(path)
        assert len(errors) == 1
        assert "校验失败" in errors[0]


# === 模型注册表测试 ===


class TestModelRegistry:
    """resolve_model() / register_model() / list_models() 测试。"""

    def test_exact_and_case_insensitive(self) -> None:
        """测试精确匹配不区分大小写。"""
        assert resolve_model("GPT-4").model_id == "gpt-4"

    def test_longest_prefix(self) -> None:
        """测试最长前缀优先：gpt-4o-mini → gpt-4o 而不是 gpt-4。"""
        assert resolve_model("gpt-4o-mini").model_id == "gpt-4o"
        assert resolve_model("gpt-4-turbo").model_id == "gpt-4"

    def test_empty_is_default(self) -> None:
        """测试空模型名使用默认模型。"""
        assert resolve_model(None).model_id == "gpt-4o"
        assert resolve_model("").model_id == "gpt-4o"

    def test_strict_unknown(self) -> None:
        """测试严格模式下的未知模型。"""
        with pytest.raises(ModelNotFoundError) as exc_info:
            resolve_model("llama", strict=True)
        assert exc_info.value.model_id == "llama"
        assert "claude-3" in exc_info.value.details["available_models"]

    def test_policy_profiles_take_precedence(self) -> None:
        """测试策略中的画像优先于内置注册表。"""
        custom = {"gpt-4o": ModelProfile(model_id="gpt-4o", max_context_tokens=1000, optimal_tokens=10)}
        assert resolve_model("gpt-4o", custom).optimal_tokens == 10

    def test_register_model(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """测试注册进程级自定义模型。"""
        monkeypatch.setattr(defaults, "MODEL_PROFILES", dict(defaults.MODEL_PROFILES))
        register_model("Local-LLM", ModelProfile(model_id="local-llm", max_context_tokens=4000, optimal_tokens=90))
        assert resolve_model("local-llm-q4").optimal_tokens == 90
        assert "local-llm" in list_models()

    def test_list_models(self) -> None:
        """测试列出内置与额外模型。"""
        extra = {"mine": ModelProfile(model_id="mine", max_context_tokens=100, optimal_tokens=10)}
        assert list_models(extra) == ["claude-3", "gpt-4", "gpt-4o", "mine"]
