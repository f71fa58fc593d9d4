# -*- coding: UTF-8 -*-
"""
Synchronisation de la lecture entre les appareils d'un même utilisateur.

Chaque connexion de l'espace ``/player`` rejoint automatiquement la salle
``player:{userId}``. Les événements sont retransmis aux autres appareils ;
``track:change`` passe en plus par la file persistée pour fixer l'index courant.
"""

from typing import Any, Optional

from musico.api.schemas.queue_schema import Queue
from musico.api.services.queue_service import QueueService
from musico.api.services.relay_service import RealtimeRelay, RelayConnection, RelayNamespace, player_room
from musico.api.utils.logging import logger


def resolve_track_change(queue: Queue, track_id: Optional[str] = None, index: Any = None,
                         direction: Optional[str] = None) -> Optional[int]:
    """
    Détermine l'index cible d'un changement de piste.

    Priorité : index explicite, puis direction (``next`` / ``previous``,
    bornée à la file), puis recherche par id de piste.

    Returns:
        L'index cible, ou None si la cible ne peut pas être résolue
    """
    length = len(queue.tracks)
    if length == 0:
        return None

    if index is not None:
        if isinstance(index, bool) or not isinstance(index, int):
            return None
        return index if 0 <= index < length else None

    if direction == "next":
        return min(queue.current + 1, length - 1)
    if direction == "previous":
        return max(queue.current - 1, 0)

    if track_id:
        return next((i for i, track in enumerate(queue.tracks) if track.id == track_id), None)

    return None


class PlayerNamespace(RelayNamespace):
    name = "/player"

    def __init__(self, relay: RealtimeRelay, queue_service: QueueService):
        super().__init__(relay)
        self.queue_service = queue_service
        self.on("join:player", self.handle_join_player)
        self.on("playback:state", self.handle_playback_state)
        self.on("queue:update", self.handle_queue_update)
        self.on("track:change", self.handle_track_change)
        self.on("seek", self.handle_seek)

    async def on_connect(self, connection: RelayConnection) -> None:
        await self.relay.join(connection.id, player_room(connection.user_id))
        logger.info(f"[PLAYER] Appareil {connection.id} connecté (user: {connection.user_id})")

    async def handle_join_player(self, connection: RelayConnection, data: Any) -> None:
        await self.relay.join(connection.id, player_room(connection.user_id))

    async def handle_playback_state(self, connection: RelayConnection, data: Any) -> None:
        await self.relay.broadcast(player_room(connection.user_id), "playback:state", data, exclude=connection.id)
        logger.debug(f"[PLAYER] État de lecture diffusé pour {connection.user_id}")

    async def handle_queue_update(self, connection: RelayConnection, data: Any) -> None:
        await self.relay.broadcast(player_room(connection.user_id), "queue:update", data, exclude=connection.id)
        logger.debug(f"[PLAYER] File diffusée pour {connection.user_id}")

    async def handle_seek(self, connection: RelayConnection, data: Any) -> None:
        if not isinstance(data, dict) or "position" not in data:
            logger.warning(f"[PLAYER] seek sans position ignoré (user: {connection.user_id})")
            return
        await self.relay.broadcast(
            player_room(connection.user_id),
            "seek",
            {"position": data["position"]},
            exclude=connection.id,
        )
        logger.debug(f"[PLAYER] Seek diffusé pour {connection.user_id}: {data['position']}s")

    async def handle_track_change(self, connection: RelayConnection, data: Any) -> None:
        if not isinstance(data, dict):
            logger.warning(f"[PLAYER] track:change invalide ignoré (user: {connection.user_id})")
            return

        user_id = connection.user_id
        queue = await self.queue_service.get_queue(user_id)
        if queue is None or not queue.tracks:
            return

        target = resolve_track_change(
            queue,
            track_id=data.get("trackId"),
            index=data.get("index"),
            direction=data.get("direction"),
        )
        if target is None:
            logger.debug(f"[PLAYER] Cible de track:change introuvable (user: {user_id}): {data}")
            return

        updated = await self.queue_service.set_current_index(user_id, target)
        if updated is None:
            return

        await self.relay.broadcast(
            player_room(user_id),
            "track:change",
            {"index": target, "queue": updated.model_dump(mode="json", by_alias=True)},
            exclude=connection.id,
        )
