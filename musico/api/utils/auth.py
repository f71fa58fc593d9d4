# -*- coding: UTF-8 -*-
"""
Résolution légère de l'identité utilisateur.

Aucune vérification cryptographique ici : le jeton est validé en amont
(passerelle / proxy). On se contente d'extraire un identifiant utilisateur
des credentials fournis à la connexion ou dans les en-têtes HTTP.
"""
import json
from typing import Any, Mapping, Optional

from fastapi import Header, HTTPException, status
from musico.api.utils.logging import logger


def resolve_user_id(credentials: Optional[Mapping[str, Any]]) -> Optional[str]:
    """
    Extrait l'identifiant utilisateur d'un objet de credentials.

    Formes acceptées, dans cet ordre : ``{"userId": ...}``, ``{"id": ...}``,
    ``{"user": {"id": ...}}``. Seule une chaîne non vide est retenue.
    """
    if not isinstance(credentials, Mapping):
        return None

    user = credentials.get('user')
    nested_id = user.get('id') if isinstance(user, Mapping) else None

    for candidate in (credentials.get('userId'), credentials.get('id'), nested_id):
        if candidate:
            return candidate if isinstance(candidate, str) else None
    return None


def credentials_from_query(query_params: Mapping[str, str]) -> dict:
    """
    Reconstruit l'objet de credentials d'une connexion WebSocket.

    Le paramètre ``auth`` peut porter un objet JSON complet ; sinon les
    paramètres ``userId``, ``id`` et ``user.id`` sont lus directement.
    """
    raw_auth = query_params.get('auth')
    if raw_auth:
        try:
            parsed = json.loads(raw_auth)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            logger.warning("[AUTH] Paramètre 'auth' non JSON ignoré")

    credentials: dict = {}
    if query_params.get('userId'):
        credentials['userId'] = query_params['userId']
    if query_params.get('id'):
        credentials['id'] = query_params['id']
    if query_params.get('user.id'):
        credentials['user'] = {'id': query_params['user.id']}
    return credentials


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Dépendance FastAPI : identifiant utilisateur via l'en-tête ``X-User-Id``."""
    user_id = resolve_user_id({'userId': x_user_id})
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user_id
