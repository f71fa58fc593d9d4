# -*- coding: UTF-8 -*-
"""Dépendances FastAPI : services construits au démarrage et stockés dans ``app.state``."""

from fastapi import Request, WebSocket

from musico.api.services.player_sync_service import PlayerNamespace
from musico.api.services.playlist_sync_service import PlaylistNamespace
from musico.api.services.queue_service import QueueService


def get_queue_service(request: Request) -> QueueService:
    return request.app.state.queue_service


def get_player_namespace(websocket: WebSocket) -> PlayerNamespace:
    return websocket.app.state.player_namespace


def get_playlist_namespace(websocket: WebSocket) -> PlaylistNamespace:
    return websocket.app.state.playlist_namespace
