"""FastAPI 应用入口"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notifier.core.config import settings
from notifier.core.errors import ErrorCode, NotifyError, create_error_response
from notifier.core.logging import logger
from notifier.routers import channels, notifications
from notifier.services.notification.consumer import NotificationConsumer
from notifier.services.notification.dispatcher import NotificationDispatcher


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    # 启动时配置日志（确保最先执行）
    logger.configure()

    logger.info("启动应用...", module="app", name=settings.APP_NAME)

    dispatcher = NotificationDispatcher.from_settings(settings)
    app.state.dispatcher = dispatcher

    consumer: NotificationConsumer | None = None
    if settings.KAFKA_ENABLED:
        consumer = NotificationConsumer.from_settings(settings, dispatcher)
        await consumer.start()
    else:
        logger.info("Kafka 消费未启用，仅提供 HTTP 接口", module="app")

    logger.info("应用启动完成", module="app", host=settings.API_HOST, port=settings.API_PORT)

    yield

    logger.info("正在关闭应用...", module="app")

    if consumer is not None:
        try:
            await consumer.stop()
        except Exception as e:
            logger.warning("关闭 Kafka 消费者时出错", module="app", error=str(e))

    await dispatcher.aclose()
    logger.info("应用已关闭", module="app")


async def notify_error_handler(request: Request, exc: NotifyError) -> JSONResponse:
    """通知错误 → 业务错误信封"""
    logger.warning(
        "请求处理失败",
        module="app",
        path=request.url.path,
        code=exc.code,
        error=str(exc),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.code, str(exc), exc.data),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """请求参数校验失败"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=create_error_response(
            ErrorCode.INVALID_REQUEST,
            "请求参数无效",
            {"errors": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]},
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """未预期异常，不向调用方暴露堆栈"""
    logger.exception("未处理的异常", module="app", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(ErrorCode.INTERNAL_ERROR, "服务内部错误"),
    )


app = FastAPI(
    title="通知分发服务",
    description="多渠道通知分发：邮件、短信、飞书、钉钉",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(NotifyError, notify_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# 注册路由
app.include_router(notifications.router)
app.include_router(channels.router)


@app.get("/health")
async def health_check(request: Request):
    """健康检查"""
    dispatcher: NotificationDispatcher = request.app.state.dispatcher
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "channels": dispatcher.enabled_channels,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "notifier.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
    )
