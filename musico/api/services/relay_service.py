# -*- coding: UTF-8 -*-
"""
Relais temps réel pour Musico.

Le relais regroupe les connexions WebSocket en salles (``player:{userId}``,
``playlist:{playlistId}``) et retransmet tel quel chaque événement reçu aux
autres membres de la salle. Il ne valide pas le contenu métier des messages.

L'appartenance aux salles est une table explicite
``id de connexion -> ensemble de salles`` possédée par ``RealtimeRelay`` ;
elle est nettoyée par ``unregister`` à la déconnexion.

Format des messages, dans les deux sens : ``{"event": <nom>, "data": <payload>}``.
"""

import asyncio
import json
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect, status
from musico.api.utils.auth import credentials_from_query, resolve_user_id
from musico.api.utils.logging import logger


def player_room(user_id: str) -> str:
    return f"player:{user_id}"


def playlist_room(playlist_id: str) -> str:
    return f"playlist:{playlist_id}"


@dataclass
class RelayConnection:
    id: str
    user_id: str
    namespace: str
    websocket: WebSocket


EventHandler = Callable[[RelayConnection, Any], Awaitable[None]]


class RealtimeRelay:
    """Table des connexions et des salles, et diffusion des événements."""

    def __init__(self):
        self.connections: Dict[str, RelayConnection] = {}
        # Clé: id de connexion, Valeur: salles rejointes
        self.memberships: Dict[str, Set[str]] = {}
        self._lock = asyncio.Lock()

    async def register(self, websocket: WebSocket, user_id: str, namespace: str) -> RelayConnection:
        connection = RelayConnection(
            id=uuid.uuid4().hex,
            user_id=user_id,
            namespace=namespace,
            websocket=websocket,
        )
        async with self._lock:
            self.connections[connection.id] = connection
            self.memberships[connection.id] = set()
        logger.info(f"[RELAY] Connexion {connection.id} enregistrée sur '{namespace}' (user: {user_id})")
        return connection

    async def unregister(self, connection_id: str) -> Set[str]:
        """
        Retire une connexion de toutes ses salles.

        Returns:
            Les salles quittées
        """
        async with self._lock:
            self.connections.pop(connection_id, None)
            rooms = self.memberships.pop(connection_id, set())
        if rooms:
            logger.debug(f"[RELAY] Connexion {connection_id} retirée des salles {sorted(rooms)}")
        return rooms

    async def join(self, connection_id: str, room: str) -> bool:
        async with self._lock:
            rooms = self.memberships.get(connection_id)
            if rooms is None:
                return False
            rooms.add(room)
        logger.debug(f"[RELAY] Connexion {connection_id} a rejoint la salle {room}")
        return True

    async def leave(self, connection_id: str, room: str) -> bool:
        async with self._lock:
            rooms = self.memberships.get(connection_id)
            if rooms is None or room not in rooms:
                return False
            rooms.discard(room)
        logger.debug(f"[RELAY] Connexion {connection_id} a quitté la salle {room}")
        return True

    def rooms_of(self, connection_id: str) -> Set[str]:
        return set(self.memberships.get(connection_id, set()))

    def members(self, room: str) -> List[str]:
        return [conn_id for conn_id, rooms in self.memberships.items() if room in rooms]

    def get_connection_count(self, namespace: Optional[str] = None) -> int:
        if namespace is None:
            return len(self.connections)
        return sum(1 for conn in self.connections.values() if conn.namespace == namespace)

    async def _safe_send(self, connection: RelayConnection, message: dict) -> bool:
        try:
            await connection.websocket.send_json(message)
            return True
        except Exception as e:
            logger.error(f"[RELAY] Erreur d'envoi vers {connection.id}: {e}")
            await self.unregister(connection.id)
            # ferme la socket pour terminer sa boucle de réception
            try:
                await connection.websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            except Exception as close_error:
                logger.debug(f"[RELAY] Socket {connection.id} déjà fermée: {close_error}")
            return False

    async def send(self, connection_id: str, event: str, data: Any = None) -> bool:
        """Envoie un événement à une seule connexion."""
        connection = self.connections.get(connection_id)
        if connection is None:
            return False
        return await self._safe_send(connection, {"event": event, "data": data})

    async def broadcast(self, room: str, event: str, data: Any = None,
                        exclude: Optional[str] = None) -> int:
        """
        Diffuse un événement à tous les membres d'une salle.

        Args:
            room: Salle cible
            event: Nom de l'événement
            data: Payload, retransmis sans modification
            exclude: Id de connexion à exclure (l'émetteur)

        Returns:
            Nombre de connexions ayant reçu le message
        """
        message = {"event": event, "data": data}
        async with self._lock:
            targets = [
                self.connections[conn_id]
                for conn_id, rooms in self.memberships.items()
                if room in rooms and conn_id != exclude and conn_id in self.connections
            ]

        if not targets:
            return 0

        results = await asyncio.gather(*(self._safe_send(conn, message) for conn in targets))
        return sum(1 for delivered in results if delivered)

    async def close_all(self) -> None:
        """Ferme toutes les connexions et vide la table des salles."""
        async with self._lock:
            connections = list(self.connections.values())
            self.connections.clear()
            self.memberships.clear()

        for connection in connections:
            try:
                await connection.websocket.close(code=status.WS_1001_GOING_AWAY)
            except Exception as e:
                logger.error(f"[RELAY] Erreur lors de la fermeture de {connection.id}: {e}")


class RelayNamespace:
    """
    Espace de noms WebSocket (``/player``, ``/playlists``).

    Les sous-classes enregistrent leurs gestionnaires avec ``self.on(...)``.
    Chaque espace répond à ``ping`` par ``pong`` à l'émetteur uniquement.
    """

    name = "/"

    def __init__(self, relay: RealtimeRelay):
        self.relay = relay
        self.handlers: Dict[str, EventHandler] = {}
        self.on("ping", self.handle_ping)

    def on(self, event: str, handler: EventHandler) -> None:
        self.handlers[event] = handler

    async def on_connect(self, connection: RelayConnection) -> None:
        pass

    async def handle_ping(self, connection: RelayConnection, data: Any) -> None:
        await self.relay.send(connection.id, "pong", data)

    async def authenticate(self, websocket: WebSocket) -> Optional[str]:
        return resolve_user_id(credentials_from_query(websocket.query_params))

    async def serve(self, websocket: WebSocket) -> None:
        """Cycle de vie complet d'une connexion : auth, salles, boucle de réception, nettoyage."""
        user_id = await self.authenticate(websocket)
        if not user_id:
            logger.warning(f"[RELAY] Connexion sans userId refusée sur '{self.name}'")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()
        connection = await self.relay.register(websocket, user_id, self.name)
        try:
            await self.on_connect(connection)
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info(f"[RELAY] Connexion {connection.id} déconnectée (code: {message.get('code')})")
                    break
                text = message.get("text")
                if text is None:
                    logger.debug(f"[RELAY] Trame binaire ignorée sur '{self.name}'")
                    continue
                await self.dispatch(connection, text)
        except WebSocketDisconnect as e:
            logger.info(f"[RELAY] Connexion {connection.id} déconnectée (code: {e.code})")
        finally:
            await self.relay.unregister(connection.id)
            logger.info(f"[RELAY] Connexion {connection.id} fermée sur '{self.name}' (user: {user_id})")

    async def dispatch(self, connection: RelayConnection, message: str) -> None:
        """Décode un message entrant et appelle le gestionnaire de l'événement."""
        try:
            envelope = json.loads(message)
        except (ValueError, RecursionError):
            logger.debug(f"[RELAY] Message non-JSON ignoré sur '{self.name}': {message[:200]!r}")
            return

        event = envelope.get("event") if isinstance(envelope, dict) else None
        if not isinstance(event, str):
            logger.warning(f"[RELAY] Message sans nom d'événement ignoré sur '{self.name}'")
            return

        handler = self.handlers.get(event)
        if handler is None:
            logger.warning(f"[RELAY] Événement '{event}' sans gestionnaire sur '{self.name}'")
            return

        try:
            await handler(connection, envelope.get("data"))
        except Exception as e:
            logger.error(f"[RELAY] Erreur dans le gestionnaire '{event}' sur '{self.name}': {e}")
