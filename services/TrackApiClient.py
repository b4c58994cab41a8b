import logging
from typing import Optional

import httpx

from config.appsettings import Settings
from schemas.spotify import Track

logger = logging.getLogger(__name__)


class TrackApiClient:
    """Получение трека через наш прокси GET /api/spotify/track/{id}"""

    def __init__(self, base_url: str = Settings.API_BASE_URL, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=Settings.SPOTIFY_TIMEOUT_SECONDS)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def lookup_track(self, track_id: str) -> Optional[Track]:
        try:
            response = await self._client.get(f"/api/spotify/track/{track_id}")
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch track {track_id}: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Track lookup for {track_id} returned {response.status_code}")
            return None

        try:
            return Track.from_spotify(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Malformed track payload for {track_id}: {e}")
            return None
