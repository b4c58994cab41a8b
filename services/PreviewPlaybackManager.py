import logging
import webbrowser
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Union

from schemas.playback import IDLE, Notification, NotificationKind, PlaybackState, PlaybackStatus
from schemas.spotify import Track

logger = logging.getLogger(__name__)


class PlaybackBlockedError(Exception):
    """play() отклонён политикой автовоспроизведения: нужен жест пользователя"""


class AudioHandle(Protocol):
    src: str

    def play(self) -> Awaitable[None]: ...

    def pause(self) -> None: ...

    def add_listener(self, event: str, callback: Callable[..., None]) -> None: ...

    def remove_listener(self, event: str, callback: Callable[..., None]) -> None: ...


class TrackLookup(Protocol):
    async def lookup_track(self, track_id: str) -> Optional[Track]: ...


AudioFactory = Callable[[str], AudioHandle]
StateListener = Callable[[PlaybackState], None]


NOTIFICATIONS: Dict[NotificationKind, Notification] = {
    NotificationKind.PLAYBACK_ERROR: Notification(
        kind=NotificationKind.PLAYBACK_ERROR,
        title="Playback error",
        description="Could not load this track preview. The audio file might be unavailable.",
        variant="destructive",
    ),
    NotificationKind.PLAYBACK_BLOCKED: Notification(
        kind=NotificationKind.PLAYBACK_BLOCKED,
        title="Playback blocked",
        description="Click anywhere on the page first, then try playing again.",
        variant="destructive",
    ),
    NotificationKind.OPENED_EXTERNAL: Notification(
        kind=NotificationKind.OPENED_EXTERNAL,
        title="Opening in Spotify",
        description="This track doesn't have a preview, so we're opening it in Spotify for you!",
    ),
}


def log_notification(notification: Notification) -> None:
    level = logging.WARNING if notification.variant == "destructive" else logging.INFO
    logger.log(level, f"{notification.title}: {notification.description}")


class _Session:
    def __init__(self, handle: AudioHandle, track_id: str):
        self.handle = handle
        self.track_id = track_id
        self.listeners: Dict[str, Callable[..., None]] = {}


class PreviewPlaybackManager:
    """
    Проигрывание превью треков: не больше одной аудиосессии на экземпляр.

    Экземпляр заводится на каждый список треков (лента, профиль, пост).
    Повторный запрос того же трека ставит его на паузу, запрос другого
    трека полностью закрывает текущую сессию. Если превью нет, открывается
    страница трека в Spotify. Ошибки не пробрасываются наружу: состояние
    возвращается в idle, пользователь получает уведомление.
    """

    def __init__(
        self,
        audio_factory: AudioFactory,
        track_lookup: Optional[TrackLookup] = None,
        notify: Callable[[Notification], None] = log_notification,
        open_url: Callable[[str], Any] = webbrowser.open_new_tab,
    ):
        self._audio_factory = audio_factory
        self._track_lookup = track_lookup
        self._notify_callback = notify
        self._open_url = open_url

        self._state: PlaybackState = IDLE
        self._session: Optional[_Session] = None
        # Трек, для которого идёт поиск превью (состояние при этом idle)
        self._pending_track_id: Optional[str] = None
        # Растёт при каждом новом запросе и остановке, устаревшие ответы сверяются с ним
        self._generation = 0
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> PlaybackState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def __aenter__(self) -> "PreviewPlaybackManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def request_playback(self, track: Union[Track, Dict[str, Any]]) -> None:
        if not isinstance(track, Track):
            try:
                track = Track.from_spotify(track)
            except Exception as e:
                logger.error(f"Cannot play malformed track record: {e}")
                return

        state = self._state

        if track.id == self._pending_track_id or (
            state.track_id == track.id and state.status == PlaybackStatus.LOADING
        ):
            # Повторный клик во время загрузки означает отмену
            self.stop_playback()
            return

        if state.track_id == track.id and state.status == PlaybackStatus.PLAYING:
            self._pause()
            return

        if state.track_id == track.id and state.status == PlaybackStatus.PAUSED and self._session is not None:
            self._set_state(PlaybackStatus.LOADING, track.id)
            await self._play(self._session)
            return

        generation = self._supersede()

        preview_url = track.preview_url
        if not preview_url:
            self._set_state(PlaybackStatus.IDLE)
            self._pending_track_id = track.id
            preview_url = await self._resolve_preview(track)
            if generation != self._generation:
                logger.debug(f"Discarding stale preview lookup for {track.id}")
                return
            self._pending_track_id = None

        if not preview_url:
            self._open_external(track)
            return

        self._start(track.id, preview_url)
        if self._session is not None:
            await self._play(self._session)

    def stop_playback(self) -> None:
        self._supersede()
        self._set_state(PlaybackStatus.IDLE)

    def close(self) -> None:
        """Освобождение при уходе со страницы"""
        self.stop_playback()
        self._listeners.clear()

    async def _resolve_preview(self, track: Track) -> Optional[str]:
        if self._track_lookup is None:
            return None
        try:
            resolved = await self._track_lookup.lookup_track(track.id)
        except Exception as e:
            logger.error(f"Failed to fetch track preview for {track.id}: {e}")
            return None
        return resolved.preview_url if resolved is not None else None

    def _start(self, track_id: str, preview_url: str) -> None:
        self._set_state(PlaybackStatus.LOADING, track_id)

        try:
            handle = self._audio_factory(preview_url)
        except Exception as e:
            logger.error(f"Cannot create audio for {track_id}: {e}")
            self._fail(NotificationKind.PLAYBACK_ERROR)
            return

        session = _Session(handle, track_id)
        session.listeners = {
            "ended": lambda *args: self._on_ended(session),
            "error": lambda *args: self._on_error(session, *args),
        }
        for event, callback in session.listeners.items():
            handle.add_listener(event, callback)

        self._session = session

    async def _play(self, session: _Session) -> None:
        try:
            await session.handle.play()
        except PlaybackBlockedError as e:
            if session is not self._session:
                return
            logger.warning(f"Playback of {session.track_id} blocked: {e}")
            self._fail(NotificationKind.PLAYBACK_BLOCKED)
            return
        except Exception as e:
            if session is not self._session:
                return
            logger.error(f"Audio play error for {session.track_id}: {e}")
            self._fail(NotificationKind.PLAYBACK_ERROR)
            return

        if session is not self._session:
            logger.debug(f"Ignoring stale play completion for {session.track_id}")
            return

        self._set_state(PlaybackStatus.PLAYING, session.track_id)

    def _pause(self) -> None:
        session = self._session
        if session is None:
            self._set_state(PlaybackStatus.IDLE)
            return
        try:
            session.handle.pause()
        except Exception as e:
            logger.error(f"Failed to pause {session.track_id}: {e}")
            self._fail(NotificationKind.PLAYBACK_ERROR)
            return
        self._set_state(PlaybackStatus.PAUSED, session.track_id)

    def _on_ended(self, session: _Session) -> None:
        if session is not self._session:
            return
        self._teardown()
        self._set_state(PlaybackStatus.IDLE)

    def _on_error(self, session: _Session, *args) -> None:
        if session is not self._session:
            return
        logger.error(f"Audio error for {session.track_id}: {args[0] if args else 'unknown'}")
        self._fail(NotificationKind.PLAYBACK_ERROR)

    def _fail(self, kind: NotificationKind) -> None:
        self._teardown()
        self._set_state(PlaybackStatus.IDLE)
        self._notify(kind)

    def _open_external(self, track: Track) -> None:
        self._set_state(PlaybackStatus.IDLE)
        try:
            self._open_url(track.external_url)
        except Exception as e:
            logger.error(f"Failed to open {track.external_url}: {e}")
        self._notify(NotificationKind.OPENED_EXTERNAL)

    def _supersede(self) -> int:
        self._generation += 1
        self._pending_track_id = None
        self._teardown()
        return self._generation

    def _teardown(self) -> None:
        # Сессия снимается до вызовов handle, так что повторный teardown ничего не делает
        session, self._session = self._session, None
        if session is None:
            return

        handle = session.handle
        try:
            handle.pause()
            handle.src = ""
        except Exception as e:
            logger.warning(f"Failed to stop audio for {session.track_id}: {e}")

        for event, callback in session.listeners.items():
            try:
                handle.remove_listener(event, callback)
            except Exception as e:
                logger.warning(f"Failed to detach {event} listener for {session.track_id}: {e}")

    def _notify(self, kind: NotificationKind) -> None:
        try:
            self._notify_callback(NOTIFICATIONS[kind])
        except Exception:
            logger.exception("Notification sink failed")

    def _set_state(self, status: PlaybackStatus, track_id: Optional[str] = None) -> None:
        state = PlaybackState(status=status, track_id=None if status == PlaybackStatus.IDLE else track_id)
        if state == self._state:
            return
        self._state = state

        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Playback state listener failed")
