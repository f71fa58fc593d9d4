from fastapi import APIRouter

# Import des routers
from .routers.queue_api import router as queue_router
from .routers.realtime_router import router as realtime_router


# Créer le router principal
api_router = APIRouter()

# Liste des routers à inclure
ROUTERS = [
    queue_router,
    realtime_router,
]

# Inclure tous les routers
for router in ROUTERS:
    api_router.include_router(router)

# Export uniquement du router principal
__all__ = ['api_router']
