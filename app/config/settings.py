from pydantic_settings import BaseSettings
from dotenv import load_dotenv, find_dotenv
from os import getenv
from typing import List, Optional

_env_path = find_dotenv()  # locate a .env file in this folder or parent folders
if _env_path:
    load_dotenv(_env_path)


class Settings(BaseSettings):
    # Database related
    DB_HOST_IP: Optional[str] = getenv('DB_HOST_IP')
    DB_USER: Optional[str] = getenv('DB_USER')
    DB_PASSWORD: Optional[str] = getenv('DB_PASSWORD')
    DB_NAME: Optional[str] = getenv('DB_NAME')
    # full SQLAlchemy URL, wins over the DB_* parts when set
    DATABASE_URL: Optional[str] = getenv('DATABASE_URL')

    # Redis
    REDIS_URL: str = getenv('REDIS_URL', 'redis://localhost:6379/0')

    # People table cache
    PEOPLE_CACHE_PREFIX: str = 'people'
    PEOPLE_FILTER_TTL: int = 60
    PEOPLE_CACHE_ENTRY_TTL: int = 120
    PEOPLE_CACHE_CHUNK_SIZE: int = 500
    PEOPLE_PER_PAGE: int = 20
    PEOPLE_PER_PAGE_ACCEPTED: List[int] = [20]

    # Population workers
    POPULATION_MAX_WORKERS: int = 4
    POPULATION_MAX_RETRIES: int = 2
    POPULATION_RETRY_DELAY: float = 0.5

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST_IP}:5432/{self.DB_NAME}"

settings = Settings()
