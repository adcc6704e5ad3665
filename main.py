"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import RequestIDMiddleware, LoggingMiddleware
from api.routes import charges as charges_routes
from api.routes import debug as debug_routes
from api.routes import payment_status as payment_status_routes
from api.routes import refunds as refunds_routes
from api.routes import webhooks as webhooks_routes
from application.services.refund_service import RefundLedger
from application.services.webhook_service import new_webhook_history
from application.utils.keyed_lock import KeyedLock
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger, configure_logging
from infrastructure.tracking import build_payment_tracker


# 初始化日志：在入口处显式配置
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理：进程级状态全部挂在 app.state 上"""
    app.state.payment_tracker = build_payment_tracker(settings)
    app.state.webhook_history = new_webhook_history()
    app.state.refund_locks = KeyedLock()
    app.state.refund_ledger = RefundLedger()
    logger.info(
        "application_started",
        environment=settings.ENVIRONMENT,
        tracker_backend=settings.tracker_backend,
        debug_endpoints=settings.DEBUG_ENDPOINTS,
    )

    yield

    try:
        await app.state.payment_tracker.aclose()
    except Exception as exc:
        logger.error("payment_tracker_close_failed", error=str(exc))
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Crypto storefront payment backend: webhooks, payment polling, charge listing and on-chain refunds",
)

# 添加中间件（后添加的在外层，先执行）
# 1. 日志中间件（依赖 request_id，放在 RequestID 内层）
app.add_middleware(LoggingMiddleware)

# 2. Request ID中间件（为内层中间件与路由绑定 request_id）
app.add_middleware(RequestIDMiddleware)

# 3. CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册全局异常处理器
register_exception_handlers(app)


# 注册路由
app.include_router(webhooks_routes.router, prefix="/api/v1")
app.include_router(payment_status_routes.router, prefix="/api/v1")
app.include_router(charges_routes.router, prefix="/api/v1")
app.include_router(refunds_routes.router, prefix="/api/v1")
app.include_router(debug_routes.router, prefix="/api/v1")


# 根路径
@app.get("/", tags=["Root"])
async def root():
    """API根路径"""
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }


# 健康检查
@app.get("/health", tags=["Health"])
async def health_check():
    """健康检查端点"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
