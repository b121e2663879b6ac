"""
FastAPI HTTP 服务器实现 — 压缩接口与分析仪表盘。

提供 RESTful API，支持以下端点：
- POST /compress — 压缩画像
- POST /classify — 判定交互类型与复杂度
- POST /outcomes — 回填下游观测结果
- GET /metrics — 滚动窗口指标
- GET /history — 最近的压缩记录
- GET /quality-analysis — 质量分布、瓶颈与优化机会
- GET /benchmark — 百分位基准
- POST /experiments — 创建并启动 A/B 实验
- GET /experiments — 列出实验
- GET /experiments/{name}/assign — 为参与者分配策略
- POST /experiments/{name}/end — 结束实验
- GET /optimization-status — 调优状态
- GET /thresholds — 当前自适应阈值
- GET /health — 健康检查

所有响应遵循统一格式：
{
    "success": bool,
    "data": {...} | null,
    "error": str | null,
    "metadata": {...}
}
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from profile_forge.errors.exceptions import ExperimentNotFoundError, ProfileForgeError
from profile_forge.facade import ProfileForge

logger = logging.getLogger(__name__)

# ============================================================
# Request/Response 模型（Pydantic）
# ============================================================


class ApiResponse(BaseModel):
    """统一响应信封。"""

    success: bool = Field(description="是否成功")
    data: Any = Field(default=None, description="响应数据")
    error: str | None = Field(default=None, description="错误信息")
    metadata: dict[str, Any] = Field(default_factory=dict, description="元数据")


class CompressRequest(BaseModel):
    """压缩请求。message 非空时先分类，显式给出的 interaction_type / complexity 优先。"""

    context: dict[str, Any] | None = Field(default=None, description="画像属性树")
    message: str | None = Field(default=None, description="用户消息（用于自动分类）")
    interaction_type: str | None = Field(default=None, description="交互类型")
    complexity: float | None = Field(default=None, ge=0.0, le=10.0, description="复杂度 0-10")
    model: str | None = Field(default=None, description="目标模型")
    token_budget: int | None = Field(default=None, ge=0, description="强制预算")
    quality_target: float | None = Field(default=None, ge=0.0, le=1.0, description="质量目标")
    history_length: int = Field(default=0, ge=0, description="对话轮数")
    force_strategy: str | None = Field(default=None, description="强制策略")
    experiment: str | None = Field(default=None, description="A/B 实验名")
    participant_id: str | None = Field(default=None, description="参与者 ID")


class ClassifyRequest(BaseModel):
    message: str = Field(description="用户消息")


class OutcomeRequest(BaseModel):
    """下游观测结果。"""

    record_id: str = Field(description="compress 返回的 record_id")
    user_feedback: float | None = Field(default=None, ge=0.0, le=1.0, description="用户满意度")
    response_quality: float | None = Field(default=None, ge=0.0, le=1.0, description="回复质量")


class ExperimentRequest(BaseModel):
    name: str = Field(description="实验名")
    strategies: list[str] = Field(description="候选策略")
    traffic_split: list[float] = Field(description="流量比例")
    duration_ms: float = Field(description="名义时长（毫秒）")


def _now() -> str:
    return datetime.now().isoformat()


# ============================================================
# FastAPI 应用
# ============================================================


def create_app(
    policy_path: str | None = None,
    enable_cors: bool = False,
    forge: ProfileForge | None = None,
    background_tuning: bool = True,
) -> FastAPI:
    """
    创建 FastAPI 应用实例。

    参数:
        policy_path: 策略文件路径
        enable_cors: 是否启用 CORS
        forge: 预先构建的 ProfileForge（测试中注入）
        background_tuning: 应用生命周期内是否运行后台调优任务

    返回:
        FastAPI 应用实例
    """
    # [DX Decision] 使用闭包持有 ProfileForge 单例，避免每次请求都创建新实例
    forge_instance: ProfileForge | None = forge

    def get_forge() -> ProfileForge:
        nonlocal forge_instance
        if forge_instance is None:
            forge_instance = ProfileForge.from_policy(policy_path)
        return forge_instance

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        instance = get_forge()
        if background_tuning:
            await instance.start_background_tuning()
        try:
            yield
        finally:
            if background_tuning:
                await instance.stop_background_tuning()

    app = FastAPI(
        title="Profile Forge API",
        description="自适应画像压缩引擎 HTTP API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # 全局异常处理器

    @app.exception_handler(ProfileForgeError)
    async def profile_forge_error_handler(request: Request, exc: ProfileForgeError) -> JSONResponse:
        """处理 ProfileForge 异常，返回三段式错误信息。"""
        status_code = 404 if isinstance(exc, ExperimentNotFoundError) else 400
        return JSONResponse(
            status_code=status_code,
            content={
                "success": False,
                "data": None,
                "error": str(exc),
                "metadata": {"error_type": type(exc).__name__, **exc.to_dict(), "timestamp": _now()},
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "data": None,
                "error": exc.detail,
                "metadata": {"status_code": exc.status_code, "timestamp": _now()},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("请求 %s %s 处理失败。", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "data": None,
                "error": f"服务器内部错误: {exc!s}",
                "metadata": {"error_type": type(exc).__name__, "timestamp": _now()},
            },
        )

    # ============================================================
    # 压缩端点
    # ============================================================

    @app.post("/compress", response_model=ApiResponse, summary="压缩画像")
    async def compress(request: CompressRequest) -> ApiResponse:
        instance = get_forge()
        options: dict[str, Any] = {
            "model": request.model,
            "token_budget": request.token_budget,
            "quality_target": request.quality_target,
            "history_length": request.history_length,
            "force_strategy": request.force_strategy,
            "experiment": request.experiment,
            "participant_id": request.participant_id,
        }
        if request.message:
            if request.interaction_type is not None:
                options["interaction_type"] = request.interaction_type
            if request.complexity is not None:
                options["complexity"] = request.complexity
            result = instance.compress_message(request.context, request.message, **options)
        else:
            result = instance.compress(
                request.context,
                request.interaction_type or "standard",
                request.complexity if request.complexity is not None else 5.0,
                **options,
            )
        return ApiResponse(
            success=True,
            data={
                "prompt_text": result.prompt_text,
                "record_id": result.record_id,
                "metadata": result.metadata.model_dump(mode="json"),
            },
            metadata={"timestamp": _now()},
        )

    @app.post("/classify", response_model=ApiResponse, summary="判定交互类型")
    async def classify(request: ClassifyRequest) -> ApiResponse:
        signals = get_forge().classify(request.message)
        return ApiResponse(success=True, data=signals.to_dict(), metadata={"timestamp": _now()})

    @app.post("/outcomes", response_model=ApiResponse, summary="回填下游观测结果")
    async def record_outcome(request: OutcomeRequest) -> ApiResponse:
        record = get_forge().record_outcome(
            request.record_id,
            user_feedback=request.user_feedback,
            response_quality=request.response_quality,
        )
        if record is None:
            raise HTTPException(
                status_code=404,
                detail=f"record_id '{request.record_id}' 不存在或已回填过。",
            )
        return ApiResponse(success=True, data=record.model_dump(mode="json"), metadata={"timestamp": _now()})

    # ============================================================
    # 分析端点
    # ============================================================

    @app.get("/metrics", response_model=ApiResponse, summary="滚动窗口指标")
    async def get_metrics(window: str = "1h") -> ApiResponse:
        snapshot = get_forge().get_metrics(window)
        return ApiResponse(success=True, data=snapshot.model_dump(mode="json"), metadata={"window": snapshot.window})

    @app.get("/history", response_model=ApiResponse, summary="最近的压缩记录")
    async def history(limit: int = Query(default=100, ge=1, le=10_000)) -> ApiResponse:
        records = get_forge().get_compression_history(limit)
        return ApiResponse(
            success=True,
            data=[record.model_dump(mode="json") for record in records],
            metadata={"total": len(records), "limit": limit},
        )

    @app.get("/quality-analysis", response_model=ApiResponse, summary="质量分析")
    async def quality_analysis(window: str = "1h") -> ApiResponse:
        analysis = get_forge().get_quality_analysis(window)
        return ApiResponse(success=True, data=analysis.model_dump(mode="json"), metadata={"window": analysis.window})

    @app.get("/benchmark", response_model=ApiResponse, summary="百分位基准")
    async def benchmark(window: str | None = None) -> ApiResponse:
        return ApiResponse(success=True, data=get_forge().get_benchmark(window), metadata={"window": window})

    @app.get("/optimization-status", response_model=ApiResponse, summary="调优状态")
    async def optimization_status() -> ApiResponse:
        return ApiResponse(success=True, data=get_forge().get_optimization_status(), metadata={"timestamp": _now()})

    @app.get("/thresholds", response_model=ApiResponse, summary="自适应阈值")
    async def thresholds() -> ApiResponse:
        return ApiResponse(success=True, data=get_forge().get_adaptive_thresholds().model_dump())

    # ============================================================
    # 实验端点
    # ============================================================

    @app.post("/experiments", response_model=ApiResponse, summary="创建并启动 A/B 实验")
    async def start_experiment(request: ExperimentRequest) -> ApiResponse:
        experiment = get_forge().start_experiment(
            request.name, request.strategies, request.traffic_split, request.duration_ms
        )
        return ApiResponse(success=True, data=experiment.summary(), metadata={"timestamp": _now()})

    @app.get("/experiments", response_model=ApiResponse, summary="列出实验")
    async def list_experiments(include_archived: bool = False) -> ApiResponse:
        experiments = get_forge().list_experiments(include_archived)
        return ApiResponse(success=True, data=experiments, metadata={"total": len(experiments)})

    @app.get("/experiments/{name}/assign", response_model=ApiResponse, summary="分配策略")
    async def assign(name: str, participant_id: str) -> ApiResponse:
        strategy = get_forge().assign_strategy(name, participant_id)
        return ApiResponse(
            success=True,
            data={"experiment": name, "participant_id": participant_id, "strategy": strategy},
        )

    @app.post("/experiments/{name}/end", response_model=ApiResponse, summary="结束实验")
    async def end_experiment(name: str) -> ApiResponse:
        report = get_forge().end_experiment(name)
        return ApiResponse(success=True, data=report.model_dump(mode="json"), metadata={"timestamp": _now()})

    # ============================================================
    # 健康检查
    # ============================================================

    @app.get("/health", response_model=ApiResponse, summary="健康检查")
    async def health() -> ApiResponse:
        from profile_forge import __version__

        instance = get_forge()
        return ApiResponse(
            success=True,
            data={
                "status": "healthy",
                "version": __version__,
                "policy": instance.policy.name,
                "tokenizer": instance.counter.name,
                "records": len(instance.analytics.recorder),
            },
            metadata={"timestamp": _now()},
        )

    return app
