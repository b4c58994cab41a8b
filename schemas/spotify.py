from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Optional


SPOTIFY_TRACK_URL = "https://open.spotify.com/track/{track_id}"


class Track(BaseModel):
    """Трек в том виде, в каком он нужен плееру превью"""
    id: str
    name: str = ""
    artists: List[str] = Field(default_factory=list)
    album: Optional[str] = None
    image: Optional[str] = None
    preview_url: Optional[str] = None
    external_url: str = ""

    @model_validator(mode='after')
    def fill_external_url(self):
        # Ссылка на страницу трека есть всегда: это запасной путь, если превью нет
        if not self.external_url:
            self.external_url = SPOTIFY_TRACK_URL.format(track_id=self.id)
        return self

    @classmethod
    def from_spotify(cls, payload: Dict[str, Any]) -> "Track":
        """
        Принимает как полный ответ Web API, так и сокращённую запись,
        сохранённую в посте (artist строкой, image строкой).
        """
        album = payload.get("album")
        artists = payload.get("artists")

        if isinstance(artists, list):
            artist_names = [a.get("name", "") if isinstance(a, dict) else str(a) for a in artists]
        elif payload.get("artist"):
            artist_names = [str(payload["artist"])]
        else:
            artist_names = []

        image = payload.get("image") if isinstance(payload.get("image"), str) else None
        if image is None and isinstance(album, dict):
            images = album.get("images") or []
            image = images[0].get("url") if images else None

        external_urls = payload.get("external_urls") or {}

        return cls(
            id=str(payload["id"]),
            name=payload.get("name") or "",
            artists=artist_names,
            album=album.get("name") if isinstance(album, dict) else album,
            image=image,
            preview_url=payload.get("preview_url") or None,
            external_url=external_urls.get("spotify") or "",
        )


class SearchResults(BaseModel):
    tracks: Dict[str, List[Dict[str, Any]]]
