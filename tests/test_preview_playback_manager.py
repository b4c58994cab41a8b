import asyncio

from schemas.playback import NotificationKind, PlaybackStatus
from schemas.spotify import Track
from services.PreviewPlaybackManager import PlaybackBlockedError, PreviewPlaybackManager
from tests.fakes import FakeLookup


def make_manager(audio_factory, notifications, opened, lookup=None) -> PreviewPlaybackManager:
    return PreviewPlaybackManager(
        audio_factory=audio_factory,
        track_lookup=lookup,
        notify=notifications.append,
        open_url=opened.append,
    )


async def test_request_starts_playback(audio_factory, notifications, opened, track_a):
    manager = make_manager(audio_factory, notifications, opened)
    states = []
    manager.subscribe(states.append)

    await manager.request_playback(track_a)

    assert manager.state.status == PlaybackStatus.PLAYING
    assert manager.state.track_id == "a"
    assert manager.state.is_playing
    assert [s.status for s in states] == [PlaybackStatus.LOADING, PlaybackStatus.PLAYING]

    [audio] = audio_factory.created
    assert audio.src == track_a.preview_url
    assert set(audio.listeners) == {"ended", "error"}
    assert notifications == []


async def test_same_track_toggles_pause_and_resume(audio_factory, notifications, opened, track_a):
    manager = make_manager(audio_factory, notifications, opened)

    await manager.request_playback(track_a)
    await manager.request_playback(track_a)

    assert manager.state.status == PlaybackStatus.PAUSED
    assert manager.state.track_id == "a"
    assert not manager.state.is_playing

    await manager.request_playback(track_a)

    assert manager.state.status == PlaybackStatus.PLAYING
    [audio] = audio_factory.created
    assert audio.pause_calls == 1
    assert audio.play_calls == 2
    assert audio.listener_count == 2


async def test_different_track_tears_down_previous_session(audio_factory, notifications, opened, track_a, track_b):
    manager = make_manager(audio_factory, notifications, opened)

    await manager.request_playback(track_a)
    await manager.request_playback(track_b)

    assert manager.state.status == PlaybackStatus.PLAYING
    assert manager.state.track_id == "b"

    audio_a, audio_b = audio_factory.created
    assert audio_a.pause_calls == 1
    assert audio_a.src == ""
    assert audio_a.listener_count == 0
    assert sorted(audio_a.removed) == ["ended", "error"]
    assert audio_b.listener_count == 2
    assert audio_b.pause_calls == 0


async def test_paused_session_is_replaced_by_new_track(audio_factory, notifications, opened, track_a, track_b):
    manager = make_manager(audio_factory, notifications, opened)

    await manager.request_playback(track_a)
    await manager.request_playback(track_a)
    await manager.request_playback(track_b)

    audio_a, audio_b = audio_factory.created
    assert audio_a.listener_count == 0
    assert manager.state.track_id == "b"


async def test_missing_preview_opens_external_link(audio_factory, notifications, opened, no_preview_track):
    lookup = FakeLookup(result=None)
    manager = make_manager(audio_factory, notifications, opened, lookup)
    states = []
    manager.subscribe(states.append)

    await manager.request_playback(no_preview_track)

    assert lookup.calls == ["np"]
    assert opened == ["https://open.spotify.com/track/np"]
    assert [n.kind for n in notifications] == [NotificationKind.OPENED_EXTERNAL]
    assert notifications[0].variant == "default"
    assert manager.state.status == PlaybackStatus.IDLE
    assert all(s.status == PlaybackStatus.IDLE for s in states)
    assert audio_factory.created == []


async def test_missing_preview_without_lookup_opens_external_link(audio_factory, notifications, opened, no_preview_track):
    manager = make_manager(audio_factory, notifications, opened)

    await manager.request_playback(no_preview_track)

    assert opened == [no_preview_track.external_url]
    assert len(notifications) == 1


async def test_failed_lookup_falls_back_to_external_link(audio_factory, notifications, opened, no_preview_track):
    lookup = FakeLookup(error=ConnectionError("network down"))
    manager = make_manager(audio_factory, notifications, opened, lookup)

    await manager.request_playback(no_preview_track)

    assert opened == [no_preview_track.external_url]
    assert [n.kind for n in notifications] == [NotificationKind.OPENED_EXTERNAL]
    assert manager.state.status == PlaybackStatus.IDLE


async def test_lookup_supplies_missing_preview(audio_factory, notifications, opened, no_preview_track):
    resolved = Track(id="np", preview_url="https://p.scdn.co/np.mp3")
    manager = make_manager(audio_factory, notifications, opened, FakeLookup(result=resolved))

    await manager.request_playback(no_preview_track)

    assert manager.state.status == PlaybackStatus.PLAYING
    assert manager.state.track_id == "np"
    assert audio_factory.created[0].src == "https://p.scdn.co/np.mp3"
    assert opened == []


async def test_stale_load_does_not_override_newer_session(audio_factory, notifications, opened, track_a, track_b):
    audio_factory.gated.add(track_a.preview_url)
    manager = make_manager(audio_factory, notifications, opened)

    pending = asyncio.create_task(manager.request_playback(track_a))
    await asyncio.sleep(0)
    assert manager.state.status == PlaybackStatus.LOADING
    assert manager.state.track_id == "a"

    await manager.request_playback(track_b)
    assert manager.state.track_id == "b"

    audio_a = audio_factory.created[0]
    audio_factory.release(audio_a)
    await pending

    assert manager.state.status == PlaybackStatus.PLAYING
    assert manager.state.track_id == "b"
    assert audio_a.pause_calls == 1
    assert audio_a.listener_count == 0


async def test_stale_load_failure_is_silent(audio_factory, notifications, opened, track_a, track_b):
    audio_factory.gated.add(track_a.preview_url)
    audio_factory.errors[track_a.preview_url] = OSError("decode failed")
    manager = make_manager(audio_factory, notifications, opened)

    pending = asyncio.create_task(manager.request_playback(track_a))
    await asyncio.sleep(0)
    await manager.request_playback(track_b)

    audio_factory.release(audio_factory.created[0])
    await pending

    assert notifications == []
    assert manager.state.track_id == "b"


async def test_stale_lookup_does_not_start_playback(audio_factory, notifications, opened, no_preview_track, track_b):
    lookup = FakeLookup(result=Track(id="np", preview_url="https://p.scdn.co/np.mp3"), gated=True)
    manager = make_manager(audio_factory, notifications, opened, lookup)

    pending = asyncio.create_task(manager.request_playback(no_preview_track))
    await asyncio.sleep(0)
    assert manager.state.status == PlaybackStatus.IDLE

    await manager.request_playback(track_b)

    lookup.gate.set_result(None)
    await pending

    assert manager.state.track_id == "b"
    assert [audio.src for audio in audio_factory.created] == [track_b.preview_url]
    assert opened == []


async def test_repeat_request_during_lookup_cancels(audio_factory, notifications, opened, no_preview_track):
    lookup = FakeLookup(result=None, gated=True)
    manager = make_manager(audio_factory, notifications, opened, lookup)

    pending = asyncio.create_task(manager.request_playback(no_preview_track))
    await asyncio.sleep(0)

    await manager.request_playback(no_preview_track)

    lookup.gate.set_result(None)
    await pending

    assert lookup.calls == ["np"]
    assert opened == []
    assert notifications == []
    assert manager.state.status == PlaybackStatus.IDLE


async def test_repeat_request_during_loading_cancels(audio_factory, notifications, opened, track_a):
    audio_factory.gated.add(track_a.preview_url)
    manager = make_manager(audio_factory, notifications, opened)

    pending = asyncio.create_task(manager.request_playback(track_a))
    await asyncio.sleep(0)

    await manager.request_playback(track_a)

    [audio] = audio_factory.created
    assert manager.state.status == PlaybackStatus.IDLE
    assert audio.pause_calls == 1

    audio_factory.release(audio)
    await pending

    assert manager.state.status == PlaybackStatus.IDLE
    assert len(audio_factory.created) == 1


async def test_natural_end_returns_to_idle(audio_factory, notifications, opened, track_a):
    manager = make_manager(audio_factory, notifications, opened)
    await manager.request_playback(track_a)

    [audio] = audio_factory.created
    audio.emit("ended")

    assert manager.state.status == PlaybackStatus.IDLE
    assert manager.state.track_id is None
    assert audio.listener_count == 0
    assert audio.pause_calls == 1
    assert notifications == []


async def test_audio_error_event_notifies_and_detaches(audio_factory, notifications, opened, track_a):
    manager = make_manager(audio_factory, notifications, opened)
    await manager.request_playback(track_a)

    [audio] = audio_factory.created
    audio.emit("error", RuntimeError("network"))

    assert manager.state.status == PlaybackStatus.IDLE
    assert [n.kind for n in notifications] == [NotificationKind.PLAYBACK_ERROR]
    assert audio.listener_count == 0

    # Повторное событие от уже закрытой сессии ничего не делает
    audio.emit("error")
    assert len(notifications) == 1


async def test_blocked_playback_has_its_own_notification(audio_factory, notifications, opened, track_a):
    audio_factory.errors[track_a.preview_url] = PlaybackBlockedError("NotAllowedError")
    manager = make_manager(audio_factory, notifications, opened)

    await manager.request_playback(track_a)

    assert manager.state.status == PlaybackStatus.IDLE
    assert [n.kind for n in notifications] == [NotificationKind.PLAYBACK_BLOCKED]
    assert notifications[0].variant == "destructive"
    assert audio_factory.created[0].listener_count == 0


async def test_decode_failure_notifies_playback_error(audio_factory, notifications, opened, track_a):
    audio_factory.errors[track_a.preview_url] = OSError("unsupported format")
    manager = make_manager(audio_factory, notifications, opened)

    await manager.request_playback(track_a)

    assert manager.state.status == PlaybackStatus.IDLE
    assert [n.kind for n in notifications] == [NotificationKind.PLAYBACK_ERROR]


async def test_audio_factory_failure_is_contained(notifications, opened, track_a):
    def broken_factory(url):
        raise ValueError("no audio backend")

    manager = make_manager(broken_factory, notifications, opened)

    await manager.request_playback(track_a)

    assert manager.state.status == PlaybackStatus.IDLE
    assert [n.kind for n in notifications] == [NotificationKind.PLAYBACK_ERROR]


async def test_stop_is_idempotent_and_tears_down_once(audio_factory, notifications, opened, track_a):
    manager = make_manager(audio_factory, notifications, opened)

    manager.stop_playback()
    await manager.request_playback(track_a)
    manager.stop_playback()
    manager.stop_playback()

    [audio] = audio_factory.created
    assert manager.state.status == PlaybackStatus.IDLE
    assert audio.pause_calls == 1
    assert sorted(audio.removed) == ["ended", "error"]


async def test_context_manager_releases_session(audio_factory, notifications, opened, track_a):
    async with make_manager(audio_factory, notifications, opened) as manager:
        await manager.request_playback(track_a)

    [audio] = audio_factory.created
    assert manager.state.status == PlaybackStatus.IDLE
    assert audio.pause_calls == 1
    assert audio.listener_count == 0


async def test_accepts_raw_spotify_payload(audio_factory, notifications, opened):
    manager = make_manager(audio_factory, notifications, opened)

    await manager.request_playback({
        "id": "raw",
        "name": "Raw",
        "preview_url": "https://p.scdn.co/raw.mp3",
        "external_urls": {"spotify": "https://open.spotify.com/track/raw"},
    })

    assert manager.state.track_id == "raw"


async def test_malformed_track_is_ignored(audio_factory, notifications, opened):
    manager = make_manager(audio_factory, notifications, opened)

    await manager.request_playback({"name": "no id"})

    assert manager.state.status == PlaybackStatus.IDLE
    assert audio_factory.created == []


async def test_failing_listener_does_not_break_transitions(audio_factory, notifications, opened, track_a):
    manager = make_manager(audio_factory, notifications, opened)

    def broken_listener(state):
        raise RuntimeError("render failed")

    manager.subscribe(broken_listener)
    await manager.request_playback(track_a)

    assert manager.state.status == PlaybackStatus.PLAYING


async def test_unsubscribe_stops_updates(audio_factory, notifications, opened, track_a):
    manager = make_manager(audio_factory, notifications, opened)
    states = []
    unsubscribe = manager.subscribe(states.append)
    unsubscribe()

    await manager.request_playback(track_a)

    assert states == []
