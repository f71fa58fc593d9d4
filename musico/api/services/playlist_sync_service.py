# -*- coding: UTF-8 -*-
"""
Édition collaborative de playlists : relais des modifications aux autres
spectateurs d'une même playlist (salle ``playlist:{playlistId}``).
"""

from typing import Any, Sequence

from musico.api.services.relay_service import RealtimeRelay, RelayConnection, RelayNamespace, playlist_room
from musico.api.utils.logging import logger


class PlaylistNamespace(RelayNamespace):
    name = "/playlists"

    # événement -> champs retransmis
    RELAYED_EVENTS = {
        "playlist:track:added": ("playlistId", "tracks", "playlistTracks"),
        "playlist:track:removed": ("playlistId", "trackIds"),
        "playlist:track:reordered": ("playlistId", "trackIds"),
        "playlist:updated": ("playlistId", "updates"),
    }

    def __init__(self, relay: RealtimeRelay):
        super().__init__(relay)
        self.on("join:playlist", self.handle_join)
        self.on("leave:playlist", self.handle_leave)
        for event, fields in self.RELAYED_EVENTS.items():
            self.on(event, self._make_relay_handler(event, fields))

    @staticmethod
    def _is_valid_playlist_id(playlist_id: Any) -> bool:
        return isinstance(playlist_id, str) and bool(playlist_id)

    async def handle_join(self, connection: RelayConnection, playlist_id: Any) -> None:
        if not self._is_valid_playlist_id(playlist_id):
            logger.warning(f"[PLAYLIST] playlistId invalide dans join:playlist: {playlist_id!r}")
            return
        await self.relay.join(connection.id, playlist_room(playlist_id))

    async def handle_leave(self, connection: RelayConnection, playlist_id: Any) -> None:
        if not self._is_valid_playlist_id(playlist_id):
            return
        await self.relay.leave(connection.id, playlist_room(playlist_id))

    def _make_relay_handler(self, event: str, fields: Sequence[str]):
        async def handler(connection: RelayConnection, data: Any) -> None:
            playlist_id = data.get("playlistId") if isinstance(data, dict) else None
            if not self._is_valid_playlist_id(playlist_id):
                logger.warning(f"[PLAYLIST] {event} sans playlistId ignoré")
                return

            payload = {field: data.get(field) for field in fields}
            await self.relay.broadcast(playlist_room(playlist_id), event, payload, exclude=connection.id)
            logger.debug(f"[PLAYLIST] {event} diffusé pour la playlist {playlist_id}")

        return handler
