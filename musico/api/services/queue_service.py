# -*- coding: UTF-8 -*-
"""
Service métier pour la file de lecture d'un utilisateur.

Chaque file est stockée dans Redis sous une clé ``queue:{user_id}`` avec une
expiration glissante de 24h. Les opérations ne lèvent jamais d'exception vers
l'appelant : une indisponibilité de Redis se traduit par ``None`` (lecture ou
mutation) ou ``False`` (écriture, suppression), après un log.

Les transformations de liste (insertion, retrait, réordonnancement) sont des
fonctions pures exposées en ``staticmethod`` pour être testées sans Redis.
"""

from typing import Dict, Iterable, List, Optional, Sequence
from pydantic import ValidationError
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from musico.api.schemas.queue_schema import Queue, QueuePosition, QueueTrack
from musico.api.services.redis_client import RedisClient
from musico.api.utils.logging import logger
from musico.api.utils.settings import get_queue_key_prefix, get_queue_ttl_seconds


class QueueStoreUnavailable(Exception):
    pass


class QueueService:
    def __init__(self, redis_client: RedisClient, key_prefix: str = None, ttl_seconds: int = None):
        self.redis = redis_client
        self.key_prefix = key_prefix if key_prefix is not None else get_queue_key_prefix()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_queue_ttl_seconds()

    def get_queue_key(self, user_id: str) -> str:
        return f"{self.key_prefix}{user_id}"

    def _handle_store_error(self, operation: str, error: Exception) -> None:
        if isinstance(error, (RedisConnectionError, RedisTimeoutError)):
            self.redis.mark_unavailable()
        logger.error(f"[QUEUE] Erreur Redis pendant {operation}: {error}")

    async def _read(self, user_id: str) -> Optional[Queue]:
        """Lit la file stockée ; lève QueueStoreUnavailable si Redis ne répond pas."""
        if not await self.redis.ensure_ready():
            raise QueueStoreUnavailable("Redis not ready")

        try:
            data = await self.redis.get(self.get_queue_key(user_id))
        except RedisError as e:
            self._handle_store_error("get", e)
            raise QueueStoreUnavailable(str(e)) from e

        if not data:
            return None

        try:
            return Queue.model_validate_json(data)
        except ValidationError as e:
            logger.error(f"[QUEUE] File illisible pour l'utilisateur {user_id}: {e}")
            return None

    async def get_queue(self, user_id: str) -> Optional[Queue]:
        """
        Récupère la file d'un utilisateur.

        Returns:
            La file stockée, ou None si elle n'existe pas ou si Redis est indisponible
        """
        try:
            return await self._read(user_id)
        except QueueStoreUnavailable:
            logger.warning("[QUEUE] Redis indisponible, file considérée absente")
            return None

    async def set_queue(self, user_id: str, queue: Queue) -> bool:
        """
        Écrase la file stockée et réarme l'expiration.

        Returns:
            True si la file a été persistée
        """
        if not await self.redis.ensure_ready():
            logger.warning("[QUEUE] Redis indisponible, impossible d'enregistrer la file")
            return False

        try:
            await self.redis.setex(
                self.get_queue_key(user_id),
                self.ttl_seconds,
                queue.model_dump_json(by_alias=True),
            )
            return True
        except RedisError as e:
            self._handle_store_error("setex", e)
            return False

    async def _save(self, user_id: str, queue: Queue) -> Optional[Queue]:
        if await self.set_queue(user_id, queue):
            return queue
        return None

    async def add_tracks(self, user_id: str, tracks: Sequence[QueueTrack],
                         position: Optional[QueuePosition] = None) -> Optional[Queue]:
        try:
            queue = await self._read(user_id)
        except QueueStoreUnavailable:
            logger.warning("[QUEUE] Redis indisponible, ajout impossible")
            return None

        queue = self.insert_tracks(queue or Queue(), tracks, position)
        logger.info(f"[QUEUE] {len(tracks)} piste(s) ajoutée(s) pour {user_id} (position: {position})")
        return await self._save(user_id, queue)

    async def remove_tracks(self, user_id: str, track_ids: Iterable[str]) -> Optional[Queue]:
        try:
            queue = await self._read(user_id)
        except QueueStoreUnavailable:
            logger.warning("[QUEUE] Redis indisponible, retrait impossible")
            return None

        if queue is None or not queue.tracks:
            return queue or Queue()

        updated = self.drop_tracks(queue, track_ids)
        logger.info(
            f"[QUEUE] {len(queue.tracks) - len(updated.tracks)} piste(s) retirée(s) pour {user_id}"
        )
        return await self._save(user_id, updated)

    async def reorder_queue(self, user_id: str, new_order: Sequence[str]) -> Optional[Queue]:
        try:
            queue = await self._read(user_id)
        except QueueStoreUnavailable:
            logger.warning("[QUEUE] Redis indisponible, réordonnancement impossible")
            return None

        if queue is None or not queue.tracks:
            return queue or Queue()

        return await self._save(user_id, self.reorder_tracks(queue, new_order))

    async def clear_queue(self, user_id: str) -> bool:
        """Supprime la file. Supprimer une file absente est un succès."""
        if not await self.redis.ensure_ready():
            logger.warning("[QUEUE] Redis indisponible, impossible de vider la file")
            return False

        try:
            deleted = await self.redis.delete(self.get_queue_key(user_id))
            logger.info(f"[QUEUE] File vidée pour {user_id} (clés supprimées: {deleted})")
            return True
        except RedisError as e:
            self._handle_store_error("delete", e)
            return False

    async def set_current_index(self, user_id: str, index: int) -> Optional[Queue]:
        try:
            queue = await self._read(user_id)
        except QueueStoreUnavailable:
            return None

        if queue is None:
            return None
        if index < 0 or index >= len(queue.tracks):
            return queue

        queue.current = index
        return await self._save(user_id, queue)

    async def get_next_track(self, user_id: str) -> Optional[QueueTrack]:
        queue = await self.get_queue(user_id)
        if not queue or not queue.tracks:
            return None

        next_index = queue.current + 1
        if next_index < 0 or next_index >= len(queue.tracks):
            return None
        return queue.tracks[next_index]

    async def get_previous_track(self, user_id: str) -> Optional[QueueTrack]:
        queue = await self.get_queue(user_id)
        if not queue or not queue.tracks:
            return None

        prev_index = queue.current - 1
        if prev_index < 0 or prev_index >= len(queue.tracks):
            return None
        return queue.tracks[prev_index]

    @staticmethod
    def insert_tracks(queue: Queue, tracks: Sequence[QueueTrack],
                      position: Optional[QueuePosition] = None) -> Queue:
        """
        Insère des pistes dans la file.

        Args:
            queue: File d'origine (non modifiée)
            tracks: Pistes à insérer, dans l'ordre
            position: ``"next"`` (après la piste courante), ``"last"`` (fin de
                file, comportement par défaut) ou un index borné à ``[0, len]``

        Returns:
            Nouvelle file ; la piste courante reste la même
        """
        length = len(queue.tracks)
        if position == "next":
            insert_index = queue.current + 1 if queue.current >= 0 else 0
        elif isinstance(position, int) and not isinstance(position, bool):
            insert_index = max(0, min(position, length))
        else:
            insert_index = length

        new_tracks = queue.tracks[:insert_index] + list(tracks) + queue.tracks[insert_index:]

        current = queue.current
        if current >= insert_index:
            current += len(tracks)

        return Queue(current=current, tracks=new_tracks)

    @staticmethod
    def drop_tracks(queue: Queue, track_ids: Iterable[str]) -> Queue:
        """Retire toutes les pistes dont l'id est fourni, en un seul passage."""
        ids = set(track_ids)
        survivors: List[QueueTrack] = []
        removed_indices = set()
        for index, track in enumerate(queue.tracks):
            if track.id in ids:
                removed_indices.add(index)
            else:
                survivors.append(track)

        current = queue.current
        if current >= 0:
            removed_before = sum(1 for index in removed_indices if index < current)
            current_removed = current in removed_indices
            current -= removed_before
            if current_removed or current >= len(survivors):
                current = min(current, len(survivors) - 1)

        if not survivors:
            current = -1

        return Queue(current=max(-1, current), tracks=survivors)

    @staticmethod
    def reorder_tracks(queue: Queue, new_order: Sequence[str]) -> Queue:
        """
        Réordonne la file selon une liste d'ids.

        Les ids inconnus sont ignorés, seule la première occurrence d'un id
        compte, et les pistes absentes de ``new_order`` sont ajoutées à la fin
        dans leur ordre d'origine. La piste courante est suivie à sa nouvelle
        position.
        """
        positions_by_id: Dict[str, List[int]] = {}
        for index, track in enumerate(queue.tracks):
            positions_by_id.setdefault(track.id, []).append(index)

        order: List[int] = []
        placed = set()
        for track_id in new_order:
            if track_id in placed or track_id not in positions_by_id:
                continue
            placed.add(track_id)
            order.extend(positions_by_id[track_id])

        order.extend(index for index, track in enumerate(queue.tracks) if track.id not in placed)

        new_tracks = [queue.tracks[index] for index in order]

        current = queue.current
        if current >= 0 and new_tracks:
            current = order.index(current) if current in order else 0
        elif not new_tracks:
            current = -1

        return Queue(current=current, tracks=new_tracks)
