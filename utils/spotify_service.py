from fastapi import HTTPException, Request, status

from services.SpotifyService import SpotifyService


def get_spotify_service(request: Request) -> SpotifyService:
    # Экземпляр создаётся в lifespan приложения (main.py)
    service = getattr(request.app.state, "spotify_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Spotify service is not initialized"
        )
    return service
