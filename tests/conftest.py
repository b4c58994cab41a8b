from typing import List

import pytest

from schemas.playback import Notification
from schemas.spotify import Track
from tests.fakes import FakeAudioFactory


@pytest.fixture
def audio_factory() -> FakeAudioFactory:
    return FakeAudioFactory()


@pytest.fixture
def notifications() -> List[Notification]:
    return []


@pytest.fixture
def opened() -> List[str]:
    return []


@pytest.fixture
def track_a() -> Track:
    return Track(id="a", name="Song A", preview_url="https://p.scdn.co/a.mp3")


@pytest.fixture
def track_b() -> Track:
    return Track(id="b", name="Song B", preview_url="https://p.scdn.co/b.mp3")


@pytest.fixture
def no_preview_track() -> Track:
    return Track(id="np", name="No Preview", external_url="https://open.spotify.com/track/np")
