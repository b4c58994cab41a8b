from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import uvicorn

from models.basemodel import BaseModel
# Регистрация таблиц в metadata
from models.users import Users
from models.posts import Posts
from models.comments import Comment
from config.appsettings import Settings
from config.database import engine
from middlewares.LoggerMiddleware import RequestLoggingMiddleware
from routes.comments import router as CommentsRouter
from routes.spotify import router as SpotifyRouter
from services.SpotifyService import SpotifyService


logging.basicConfig(
    level=logging.DEBUG if Settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if Settings.DB_CREATE_TABLES:
        async with engine.begin() as conn:
            await conn.run_sync(BaseModel.metadata.create_all)

    # Один клиент Spotify на процесс, роуты получают его через get_spotify_service
    app.state.spotify_service = SpotifyService()
    if not Settings.SPOTIFY_CLIENT_ID:
        logger.warning("SPOTIFY_CLIENT_ID is not set, Spotify endpoints will return 401")

    logger.info(f"{Settings.APP_NAME} {Settings.APP_VERSION} started")

    yield

    await app.state.spotify_service.aclose()
    await engine.dispose()
    logger.info("Application shutdown completed")


app = FastAPI(
    title=Settings.APP_NAME,
    version=Settings.APP_VERSION,
    description=Settings.APP_DESCRIPTION,
    docs_url="/api/docs" if Settings.DEBUG else None,
    redoc_url="/api/redoc" if Settings.DEBUG else None,
    lifespan=lifespan
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

app.add_middleware(
    RequestLoggingMiddleware,
    exclude_paths=["/api/docs", "/api/redoc", "/openapi.json"],
    log_request_body=False
)

app.include_router(CommentsRouter)
app.include_router(SpotifyRouter)


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=Settings.DEBUG)
