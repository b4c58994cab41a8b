import time
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from config.appsettings import Settings
from schemas.spotify import Track

logger = logging.getLogger(__name__)

# Размер подборок и рекомендаций по умолчанию
DEFAULT_BROWSE_LIMIT = 20


class SpotifyError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SpotifyAuthError(SpotifyError):
    pass


class SpotifyService:
    """
    Клиент Spotify Web API (client credentials).

    Создаётся один раз в lifespan приложения и передаётся в роуты через
    зависимость, глобального экземпляра нет.
    """

    SEARCH_TYPES = ("track", "artist", "album", "playlist")
    MAX_LIMIT = 50
    MAX_SEEDS = 5
    # Токен обновляем заранее, чтобы он не истёк посреди запроса
    TOKEN_EXPIRY_MARGIN = 60

    def __init__(
        self,
        client_id: str = Settings.SPOTIFY_CLIENT_ID,
        client_secret: str = Settings.SPOTIFY_CLIENT_SECRET,
        market: str = Settings.SPOTIFY_MARKET,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.market = market
        self._client = client or httpx.AsyncClient(timeout=Settings.SPOTIFY_TIMEOUT_SECONDS)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    async def aclose(self) -> None:
        await self._client.aclose()

    def reset_token(self) -> None:
        self._token = None
        self._token_expires_at = 0.0

    async def _get_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        if not self.client_id or not self.client_secret:
            raise SpotifyAuthError("No Spotify credentials found. Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET", 401)

        try:
            response = await self._client.post(
                Settings.SPOTIFY_TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
            )
        except httpx.HTTPError as e:
            raise SpotifyError(f"Failed to reach Spotify accounts service: {e}") from e

        if response.status_code in (400, 401):
            raise SpotifyAuthError("Spotify rejected the client credentials", 401)
        if response.status_code != 200:
            raise SpotifyError(f"Failed to fetch Spotify token: {response.status_code}", response.status_code)

        payload = response.json()
        self._token = payload["access_token"]
        expires_in = int(payload.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + max(expires_in - self.TOKEN_EXPIRY_MARGIN, 0)
        logger.info("Spotify access token refreshed")

        return self._token

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{Settings.SPOTIFY_API_URL}{path}"

        # Один повтор после 401: токен мог быть отозван раньше срока
        for attempt in range(2):
            token = await self._get_token()
            try:
                response = await self._client.get(
                    url, params=params, headers={"Authorization": f"Bearer {token}"}
                )
            except httpx.HTTPError as e:
                raise SpotifyError(f"Spotify request failed: {e}") from e

            if response.status_code == 401 and attempt == 0:
                logger.warning("Spotify token rejected, refreshing")
                self.reset_token()
                continue
            break

        if response.status_code == 401:
            raise SpotifyAuthError("Spotify authentication required", 401)
        if response.status_code != 200:
            raise SpotifyError(f"Spotify API error on {path}: {response.status_code}", response.status_code)

        return response.json()

    def _clamp_limit(self, limit: Any, default: int = 10) -> int:
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            limit = default
        return min(self.MAX_LIMIT, max(1, limit))

    async def search(self, query: str, type: str = "track", limit: int = 10) -> Dict[str, Any]:
        query = (query or "").strip()
        if not query:
            raise ValueError("Query parameter is required")
        if type not in self.SEARCH_TYPES:
            raise ValueError(f"Unsupported search type: {type}")

        results = await self._request(
            "/search", params={"q": query, "type": type, "market": self.market, "limit": self._clamp_limit(limit)}
        )

        # Отбрасываем неполные треки, клиент рассчитывает на эти поля
        items = (results.get("tracks") or {}).get("items") or []
        return {
            "tracks": {
                "items": [
                    track for track in items
                    if track and track.get("id") and track.get("name") and track.get("artists") and track.get("album")
                ]
            }
        }

    async def get_track(self, track_id: str) -> Dict[str, Any]:
        return await self._request(f"/tracks/{track_id}", params={"market": self.market})

    async def lookup_track(self, track_id: str) -> Optional[Track]:
        """Поиск трека для плеера превью. Ошибки не пробрасываются"""
        try:
            return Track.from_spotify(await self.get_track(track_id))
        except Exception as e:
            logger.error(f"Failed to look up Spotify track {track_id}: {e}")
            return None

    async def get_artist(self, artist_id: str) -> Dict[str, Any]:
        return await self._request(f"/artists/{artist_id}")

    async def get_album(self, album_id: str) -> Dict[str, Any]:
        return await self._request(f"/albums/{album_id}", params={"market": self.market})

    async def featured_playlists(self, limit: int = DEFAULT_BROWSE_LIMIT) -> Dict[str, Any]:
        return await self._request(
            "/browse/featured-playlists", params={"country": self.market, "limit": self._clamp_limit(limit)}
        )

    async def recommendations(
        self,
        seed_tracks: Optional[Iterable[str] | str] = None,
        seed_artists: Optional[Iterable[str] | str] = None,
        seed_genres: Optional[Iterable[str] | str] = None,
        limit: int = DEFAULT_BROWSE_LIMIT,
    ) -> Dict[str, Any]:
        """
        Рекомендации по сид-трекам, артистам и жанрам. Сиды можно передать
        списком или строкой через запятую. Spotify принимает от 1 до 5 сидов
        суммарно, иначе ValueError.
        """
        seeds = {
            "seed_tracks": _split_seeds(seed_tracks),
            "seed_artists": _split_seeds(seed_artists),
            "seed_genres": _split_seeds(seed_genres),
        }
        total = sum(len(values) for values in seeds.values())
        if total == 0:
            raise ValueError("At least one of seed_tracks, seed_artists or seed_genres is required")
        if total > self.MAX_SEEDS:
            raise ValueError(f"At most {self.MAX_SEEDS} seeds are allowed, got {total}")

        params: Dict[str, Any] = {key: ",".join(values) for key, values in seeds.items() if values}
        params["market"] = self.market
        params["limit"] = self._clamp_limit(limit)

        return await self._request("/recommendations", params=params)

    async def genres(self) -> Dict[str, Any]:
        return await self._request("/recommendations/available-genre-seeds")


def _split_seeds(value: Optional[Iterable[str] | str]) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [seed.strip() for seed in value if seed and seed.strip()]
