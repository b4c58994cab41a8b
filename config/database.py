from .appsettings import Settings
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker


# URL.create экранирует пароль, в отличие от f-строки
DATABASE_URL = URL.create(
    drivername=f'postgresql+{Settings.DB_DRIVER}',
    username=Settings.DB_USERNAME,
    password=Settings.DB_PASSWORD,
    host=Settings.DB_HOST,
    port=Settings.DB_PORT,
    database=Settings.DB_NAME,
)

engine = create_async_engine(DATABASE_URL, echo=Settings.DEBUG, pool_pre_ping=True)

CommentsSession = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Сессия на время запроса. Все эндпоинты только читают, поэтому коммита нет"""
    async with CommentsSession() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
