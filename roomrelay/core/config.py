# roomrelay/core/config.py
import os
from typing import List, Literal
from dotenv import load_dotenv


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """
    Setup environment variables.
        - STORAGE_BACKEND where message history lives: "mongo" or "memory"
        - MONGO_URI connection string; the database name is taken from its path
        - PUB_SUB_SERVICE how room broadcasts fan out: "local" or "redis"
        - DEFAULT_ROOMS comma separated rooms that exist from startup
    """

    # Load environment variables from the .env file
    load_dotenv()

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "5000"))

    STORAGE_BACKEND: Literal["mongo", "memory"] = os.getenv("STORAGE_BACKEND", "mongo")
    MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017/groupchat")
    MONGO_COLLECTION: str = os.getenv("MONGO_COLLECTION", "messages")

    PUB_SUB_SERVICE: Literal["local", "redis"] = os.getenv("PUB_SUB_SERVICE", "local")

    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_ACCESS_KEY: str = os.getenv("REDIS_ACCESS_KEY", "")
    REDIS_SSL: bool = os.getenv("REDIS_SSL", "false").lower() == "true"

    DEFAULT_ROOMS: List[str] = _split_csv(os.getenv("DEFAULT_ROOMS", "interactive-session,Room 2"))
    CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "*"))

settings = Settings()
