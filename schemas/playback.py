from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


class PlaybackState(BaseModel):
    status: PlaybackStatus = PlaybackStatus.IDLE
    track_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_playing(self) -> bool:
        return self.status == PlaybackStatus.PLAYING and self.track_id is not None


IDLE = PlaybackState()


class NotificationKind(str, Enum):
    PLAYBACK_ERROR = "playback_error"
    PLAYBACK_BLOCKED = "playback_blocked"
    OPENED_EXTERNAL = "opened_external"


class Notification(BaseModel):
    kind: NotificationKind
    title: str
    description: str
    variant: str = "default"

    model_config = ConfigDict(frozen=True)
