from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional, Union


class CamelSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class QueueTrack(CamelSchema):
    """Référence de piste dans une file, avec ses métadonnées dénormalisées."""
    id: str = Field(..., min_length=1, description="Identifiant de la piste")
    title: Optional[str] = None
    artist_id: Optional[str] = None
    artist_name: Optional[str] = None
    album_id: Optional[str] = None
    album_name: Optional[str] = None
    duration: Optional[float] = Field(None, description="Durée en secondes")
    cover_art: Optional[str] = None
    is_explicit: Optional[bool] = None

    model_config = ConfigDict(extra='allow')


class Queue(CamelSchema):
    current: int = Field(-1, ge=-1, description="Index de la piste courante, -1 si aucune")
    tracks: List[QueueTrack] = []


class QueueWithMetadata(Queue):
    previous: List[QueueTrack] = []
    next: List[QueueTrack] = []
    total: int = 0

    @classmethod
    def from_queue(cls, queue: Optional[Queue]) -> "QueueWithMetadata":
        if queue is None:
            return cls()

        if queue.current >= 0:
            previous = queue.tracks[:queue.current]
            following = queue.tracks[queue.current + 1:]
        else:
            previous = []
            following = list(queue.tracks)

        return cls(
            current=queue.current,
            tracks=queue.tracks,
            previous=previous,
            next=following,
            total=len(queue.tracks),
        )


QueuePosition = Union[Literal["next", "last"], int]


class AddToQueueRequest(CamelSchema):
    tracks: List[QueueTrack] = []
    track_ids: List[str] = []
    position: Optional[QueuePosition] = None


class TrackIdsRequest(CamelSchema):
    track_ids: List[str] = []


class SetCurrentRequest(CamelSchema):
    index: int


class QueueMutationResponse(CamelSchema):
    queue: Queue
    added: Optional[int] = None
    removed: Optional[int] = None
    reordered: Optional[int] = None
    current_index: Optional[int] = None


class TrackLookupResponse(CamelSchema):
    track: Optional[QueueTrack] = None
