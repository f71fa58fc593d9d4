# -*- coding: UTF-8 -*-
"""
Router pour les espaces WebSocket temps réel (lecture et playlists).
"""

from fastapi import APIRouter, Depends, WebSocket

from musico.api.dependencies import get_player_namespace, get_playlist_namespace
from musico.api.services.player_sync_service import PlayerNamespace
from musico.api.services.playlist_sync_service import PlaylistNamespace

router = APIRouter(tags=["realtime"])


@router.websocket("/player")
async def player_ws(websocket: WebSocket, namespace: PlayerNamespace = Depends(get_player_namespace)):
    """Synchronisation de la lecture entre les appareils d'un utilisateur."""
    await namespace.serve(websocket)


@router.websocket("/playlists")
async def playlists_ws(websocket: WebSocket, namespace: PlaylistNamespace = Depends(get_playlist_namespace)):
    """Édition collaborative des playlists."""
    await namespace.serve(websocket)
