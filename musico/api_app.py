# -*- coding: UTF-8 -*-
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from musico import __version__
from musico.api import api_router
from musico.api.services.player_sync_service import PlayerNamespace
from musico.api.services.playlist_sync_service import PlaylistNamespace
from musico.api.services.queue_service import QueueService
from musico.api.services.redis_client import RedisClient
from musico.api.services.relay_service import RealtimeRelay
from musico.api.utils.logging import logger
from musico.api.utils.settings import get_cors_origins


def create_api(redis_client: Optional[RedisClient] = None) -> FastAPI:
    """
    Construit l'application FastAPI.

    Le client Redis, la file de lecture et le relais temps réel sont créés
    dans le lifespan puis exposés via ``app.state``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Démarrage de l'API Musico...")
        client = redis_client or RedisClient()
        await client.connect()

        relay = RealtimeRelay()
        queue_service = QueueService(client)
        app.state.redis_client = client
        app.state.queue_service = queue_service
        app.state.relay = relay
        app.state.player_namespace = PlayerNamespace(relay, queue_service)
        app.state.playlist_namespace = PlaylistNamespace(relay)

        for route in app.routes:
            # les routers inclus n'ont pas forcément de chemin propre
            path = getattr(route, "path", None)
            if path is None:
                continue
            if getattr(route, "methods", None):
                logger.debug(f"Route enregistrée: {path} [{route.methods}]")
            else:
                logger.debug(f"WebSocket route enregistrée: {path}")
        yield
        logger.info("Arrêt de l'API Musico...")
        await relay.close_all()
        await client.disconnect()

    app = FastAPI(title="Musico API",
                  version=__version__,
                  docs_url="/api/docs",
                  openapi_url="/api/openapi.json",
                  lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.debug(f"URL demandée: {request.method} {request.url}")
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=jsonable_encoder({"detail": exc.errors(), "body": exc.body}),
        )

    app.include_router(api_router)

    @app.get('/api/healthcheck', status_code=status.HTTP_200_OK, tags=["health"])
    def perform_healthcheck(request: Request):
        """Healthcheck simple ; indique aussi si Redis répond."""
        client = getattr(request.app.state, "redis_client", None)
        return {"status": "healthy", "redis": bool(client and client.is_ready)}

    return app


app = create_api()
