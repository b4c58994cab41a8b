from pydantic_settings import BaseSettings

class AppSettings(BaseSettings):
    APP_NAME: str = "Writers Guild"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Writers Guild API: posts, comment threads and Spotify previews"
    DEBUG: bool = False

    DB_USERNAME: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "writers_guild"
    DB_DRIVER: str = "asyncpg"
    DB_CREATE_TABLES: bool = True

    CORS_ORIGINS: list[str] = ['http://localhost:5173']

    SPOTIFY_CLIENT_ID: str = ""
    SPOTIFY_CLIENT_SECRET: str = ""
    SPOTIFY_MARKET: str = "US"
    SPOTIFY_API_URL: str = "https://api.spotify.com/v1"
    SPOTIFY_TOKEN_URL: str = "https://accounts.spotify.com/api/token"
    SPOTIFY_TIMEOUT_SECONDS: float = 10.0

    # Базовый адрес нашего API, когда плеер работает вне процесса сервера
    API_BASE_URL: str = "http://localhost:8000"

    class Config:
        env_file = ".env"
        extra = "ignore"

Settings = AppSettings()
