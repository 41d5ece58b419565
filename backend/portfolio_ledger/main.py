# 主程序入口 (Main Entry Point)
# 职责：初始化 FastAPI 应用、配置全局日志、管理数据库与行情网关的生命周期、添加中间件、挂载路由
import time
import logging
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from portfolio_ledger.core.config import settings
from portfolio_ledger.core.database import Database
from portfolio_ledger.core.exceptions import LedgerError
from portfolio_ledger.services.market_providers import ProviderFactory

# 1. 全局日志配置 (Global Logging Configuration)
handlers = [logging.StreamHandler()]
if settings.LOG_FILE:
    handlers.append(logging.FileHandler(settings.LOG_FILE))

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=handlers,
)
logger = logging.getLogger("api_logger")

# 降低第三方库日志级别，减少噪音
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


# 2. 生命周期 (Lifespan)
# 启动时打开数据库句柄与行情网关，关闭时释放；请求通过 app.state 拿到它们
@asynccontextmanager
async def lifespan(app: FastAPI):
    database = Database.from_settings(settings)
    await database.create_all()
    quote_gateway = ProviderFactory.create(settings)
    app.state.database = database
    app.state.quote_gateway = quote_gateway
    logger.info(f"{settings.PROJECT_NAME} started (quotes via {type(quote_gateway).__name__})")
    try:
        yield
    finally:
        await quote_gateway.aclose()
        await database.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="个人资产管理后端：现金与股票持仓、实时行情买卖、交易流水",
        version="1.0.0",
        lifespan=lifespan,
    )

    # 3. 异常处理器 (Exception Handlers)
    # 业务异常按类型映射状态码；存储层错误只返回笼统信息，不泄露细节
    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        return JSONResponse(status_code=400, content={"detail": f"Invalid {field or 'request'}"})

    # 捕获所有未处理的异常，返回结构化错误信息而不是让 worker 崩溃
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: "
            f"{type(exc).__name__}: {exc}\n{traceback.format_exc()}"
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # 4. HTTP 请求日志中间件 (Request Logging Middleware)
    # 记录请求耗时、路径、方法及路径中的用户 ID
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        parts = request.url.path.strip("/").split("/")
        user_id = parts[2] if len(parts) > 2 and parts[:2] == ["api", "user"] else "anonymous"

        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000
        formatted_process_time = f"{process_time:.2f}ms"

        logger.info(
            f"path={request.url.path} "
            f"method={request.method} "
            f"status_code={response.status_code} "
            f"user_id={user_id} "
            f"time={formatted_process_time}"
        )

        response.headers["X-Process-Time"] = formatted_process_time
        return response

    # 5. 跨域资源共享配置 (CORS Configuration)
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    origins.extend(settings.ALLOWED_ORIGINS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 6. 路由挂载 (Router Inclusion)
    from portfolio_ledger.api.v1.api import api_router
    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["System"])
    async def health_check():
        """健康检查接口：确保后端服务在线"""
        return {"status": "ok", "message": "Service is healthy"}

    return app


app = create_app()
