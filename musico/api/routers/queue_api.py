from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse

from musico.api.dependencies import get_queue_service
from musico.api.schemas.queue_schema import (
    AddToQueueRequest,
    QueueMutationResponse,
    QueueTrack,
    QueueWithMetadata,
    SetCurrentRequest,
    TrackIdsRequest,
    TrackLookupResponse,
)
from musico.api.services.queue_service import QueueService
from musico.api.utils.auth import get_current_user_id


router = APIRouter(prefix="/api/queue", tags=["queue"])


@router.get("", response_model=QueueWithMetadata)
async def get_queue(user_id: str = Depends(get_current_user_id),
                    service: QueueService = Depends(get_queue_service)):
    queue = await service.get_queue(user_id)
    return QueueWithMetadata.from_queue(queue)


@router.post("/add", response_model=QueueMutationResponse, response_model_exclude_none=True)
async def add_to_queue(payload: AddToQueueRequest,
                       user_id: str = Depends(get_current_user_id),
                       service: QueueService = Depends(get_queue_service)):
    tracks = list(payload.tracks)
    known_ids = {track.id for track in tracks}
    # ids sans métadonnées : références minimales
    tracks.extend(QueueTrack(id=track_id) for track_id in payload.track_ids
                  if track_id and track_id not in known_ids)

    if not tracks:
        raise HTTPException(status_code=400, detail="tracks or trackIds must be a non-empty array")

    updated = await service.add_tracks(user_id, tracks, payload.position)
    if updated is None:
        raise HTTPException(status_code=503, detail="Failed to update queue")

    return QueueMutationResponse(queue=updated, added=len(tracks))


@router.delete("/remove", response_model=QueueMutationResponse, response_model_exclude_none=True)
async def remove_from_queue(payload: TrackIdsRequest,
                            user_id: str = Depends(get_current_user_id),
                            service: QueueService = Depends(get_queue_service)):
    if not payload.track_ids:
        raise HTTPException(status_code=400, detail="trackIds must be a non-empty array")

    updated = await service.remove_tracks(user_id, payload.track_ids)
    if updated is None:
        raise HTTPException(status_code=503, detail="Failed to update queue")

    return QueueMutationResponse(queue=updated, removed=len(payload.track_ids))


@router.put("/reorder", response_model=QueueMutationResponse, response_model_exclude_none=True)
async def reorder_queue(payload: TrackIdsRequest,
                        user_id: str = Depends(get_current_user_id),
                        service: QueueService = Depends(get_queue_service)):
    if not payload.track_ids:
        raise HTTPException(status_code=400, detail="trackIds must be a non-empty array")

    queue = await service.get_queue(user_id)
    if queue is None or not queue.tracks:
        raise HTTPException(status_code=400, detail="Queue is empty")

    queue_track_ids = {track.id for track in queue.tracks}
    invalid_track_ids = [tid for tid in payload.track_ids if tid not in queue_track_ids]
    if invalid_track_ids:
        return JSONResponse(
            status_code=400,
            content={"detail": "Some track IDs are not in the queue", "invalidTrackIds": invalid_track_ids},
        )

    updated = await service.reorder_queue(user_id, payload.track_ids)
    if updated is None:
        raise HTTPException(status_code=503, detail="Failed to reorder queue")

    return QueueMutationResponse(queue=updated, reordered=len(payload.track_ids))


@router.delete("/clear", status_code=status.HTTP_204_NO_CONTENT)
async def clear_queue(user_id: str = Depends(get_current_user_id),
                      service: QueueService = Depends(get_queue_service)):
    if not await service.clear_queue(user_id):
        raise HTTPException(status_code=503, detail="Failed to clear queue")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/current", response_model=QueueMutationResponse, response_model_exclude_none=True)
async def set_current_track(payload: SetCurrentRequest,
                            user_id: str = Depends(get_current_user_id),
                            service: QueueService = Depends(get_queue_service)):
    if payload.index < 0:
        raise HTTPException(status_code=400, detail="index must be a non-negative number")

    queue = await service.get_queue(user_id)
    if queue is None:
        raise HTTPException(status_code=400, detail="Queue not found")
    if payload.index >= len(queue.tracks):
        raise HTTPException(status_code=400, detail="Index out of bounds")

    updated = await service.set_current_index(user_id, payload.index)
    if updated is None:
        raise HTTPException(status_code=503, detail="Failed to update current track")

    return QueueMutationResponse(queue=updated, current_index=payload.index)


@router.get("/next", response_model=TrackLookupResponse)
async def get_next_track(user_id: str = Depends(get_current_user_id),
                         service: QueueService = Depends(get_queue_service)):
    return TrackLookupResponse(track=await service.get_next_track(user_id))


@router.get("/previous", response_model=TrackLookupResponse)
async def get_previous_track(user_id: str = Depends(get_current_user_id),
                             service: QueueService = Depends(get_queue_service)):
    return TrackLookupResponse(track=await service.get_previous_track(user_id))
