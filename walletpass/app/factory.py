# walletpass/app/factory.py
from __future__ import annotations
import logging
from collections.abc import Sequence

from fastapi import APIRouter, FastAPI



def createApp(*, extraRouters: Sequence[APIRouter] = (), configureLogs: bool = True) -> FastAPI:
    if configureLogs:
        from walletpass.core.logging import configureLogging
        configureLogging()
    from walletpass.app.config import initConfig
    initConfig()

    logger = logging.getLogger(__name__)

    app = FastAPI(title="walletpass")

    from walletpass.app.web import router as webRouter
    app.include_router(webRouter)

    for router in extraRouters:
        app.include_router(router)

    logger.info("walletpass app initialized with %d extra router(s)", len(extraRouters))
    return app
