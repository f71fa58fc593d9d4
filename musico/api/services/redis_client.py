# -*- coding: UTF-8 -*-
"""
Client Redis asynchrone avec cycle de vie explicite.

Une instance est construite au démarrage de l'application puis injectée dans
les services qui en ont besoin (QueueService). Les erreurs de connexion ne
sont jamais propagées : le client passe simplement en état « non prêt ».
"""

from typing import Optional
import redis.asyncio as redis
from musico.api.utils.logging import logger
from musico.api.utils.settings import get_redis_url


class RedisClient:
    """Enveloppe d'un client ``redis.asyncio.Redis`` avec connect/disconnect."""

    def __init__(self, redis_url: str = None, client: Optional[redis.Redis] = None):
        if redis_url is None:
            redis_url = get_redis_url()
        self.redis_url = redis_url
        self.client: Optional[redis.Redis] = client
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self.client is not None and self._ready

    async def connect(self) -> bool:
        """
        Établit la connexion Redis.

        Returns:
            True si le serveur répond au ping
        """
        if self.client is None:
            self.client = redis.from_url(self.redis_url, decode_responses=True)
        try:
            await self.client.ping()
            self._ready = True
            logger.info("[REDIS] Connexion établie")
        except Exception as e:
            self._ready = False
            logger.warning(f"[REDIS] Connexion échouée: {e}")
        return self._ready

    async def ensure_ready(self) -> bool:
        """Retente un ping si le client a été marqué indisponible."""
        if self.client is None:
            return False
        if self._ready:
            return True
        try:
            await self.client.ping()
            self._ready = True
            logger.info("[REDIS] Connexion rétablie")
        except Exception as e:
            logger.debug(f"[REDIS] Toujours indisponible: {e}")
        return self._ready

    def mark_unavailable(self) -> None:
        if self._ready:
            logger.warning("[REDIS] Client marqué indisponible")
        self._ready = False

    async def disconnect(self) -> None:
        """Ferme la connexion Redis."""
        if self.client is None:
            return
        try:
            await self.client.aclose()
            logger.info("[REDIS] Connexion fermée")
        except Exception as e:
            logger.error(f"[REDIS] Erreur lors de la fermeture: {e}")
        finally:
            self._ready = False
            self.client = None

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        await self.client.setex(key, ttl, value)

    async def delete(self, key: str) -> int:
        return await self.client.delete(key)
