from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
import logging

from services.SpotifyService import SpotifyAuthError, SpotifyError, SpotifyService
from utils.spotify_service import get_spotify_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix='/api/spotify',
    tags=['spotify']
)


def _spotify_http_error(e: SpotifyError, not_found: str = "Not found") -> HTTPException:
    if isinstance(e, SpotifyAuthError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Spotify authentication required"
        )
    if e.status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Spotify service unavailable"
    )


@router.get('/search', status_code=status.HTTP_200_OK)
async def search(
    q: str = Query(""),
    type: str = Query("track"),
    limit: int = Query(10),
    spotify: SpotifyService = Depends(get_spotify_service)
):
    if not q.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query parameter is required")

    try:
        return await spotify.search(q, type=type, limit=limit)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SpotifyError as e:
        logger.error(f"Spotify search failed: {e}")
        raise _spotify_http_error(e)


@router.get('/track/{track_id}', status_code=status.HTTP_200_OK)
async def get_track(track_id: str, spotify: SpotifyService = Depends(get_spotify_service)):
    try:
        return await spotify.get_track(track_id)
    except SpotifyError as e:
        logger.error(f"Get track {track_id} failed: {e}")
        raise _spotify_http_error(e, "Track not found")


@router.get('/artist/{artist_id}', status_code=status.HTTP_200_OK)
async def get_artist(artist_id: str, spotify: SpotifyService = Depends(get_spotify_service)):
    try:
        return await spotify.get_artist(artist_id)
    except SpotifyError as e:
        logger.error(f"Get artist {artist_id} failed: {e}")
        raise _spotify_http_error(e, "Artist not found")


@router.get('/album/{album_id}', status_code=status.HTTP_200_OK)
async def get_album(album_id: str, spotify: SpotifyService = Depends(get_spotify_service)):
    try:
        return await spotify.get_album(album_id)
    except SpotifyError as e:
        logger.error(f"Get album {album_id} failed: {e}")
        raise _spotify_http_error(e, "Album not found")


@router.get('/featured-playlists', status_code=status.HTTP_200_OK)
async def featured_playlists(spotify: SpotifyService = Depends(get_spotify_service)):
    try:
        return await spotify.featured_playlists()
    except SpotifyError as e:
        logger.error(f"Get featured playlists failed: {e}")
        raise _spotify_http_error(e)


@router.get('/recommendations', status_code=status.HTTP_200_OK)
async def recommendations(
    seed_tracks: Optional[str] = Query(None),
    seed_artists: Optional[str] = Query(None),
    seed_genres: Optional[str] = Query(None),
    spotify: SpotifyService = Depends(get_spotify_service)
):
    try:
        return await spotify.recommendations(
            seed_tracks=seed_tracks,
            seed_artists=seed_artists,
            seed_genres=seed_genres
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SpotifyError as e:
        logger.error(f"Get recommendations failed: {e}")
        raise _spotify_http_error(e)


@router.get('/genres', status_code=status.HTTP_200_OK)
async def genres(spotify: SpotifyService = Depends(get_spotify_service)):
    try:
        return await spotify.genres()
    except SpotifyError as e:
        logger.error(f"Get genres failed: {e}")
        raise _spotify_http_error(e)
