"""准入 webhook 与健康检查端点."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from putio_operator import __version__
from putio_operator.api import admission
from putio_operator.config import get_settings

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期."""
    logger.info("putio-operator webhook %s 已启动", __version__)
    yield
    logger.info("putio-operator webhook 已停止")


app = FastAPI(
    title="putio-operator",
    description="Admission webhook for put.io Feed resources",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(admission.router)


@app.get("/healthz")
async def healthz() -> dict:
    """存活检查."""
    return {"status": "ok"}


@app.get("/readyz")
async def readyz() -> dict:
    """就绪检查."""
    return {"status": "ok"}


def run() -> None:
    """用 uvicorn 运行 webhook."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "putio_operator.main:app",
        host=settings.webhook_host,
        port=settings.webhook_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
