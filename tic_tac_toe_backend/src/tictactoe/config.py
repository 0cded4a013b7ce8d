import os
from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


MYSQL_USER = os.getenv("MYSQL_USER")
MYSQL_PASSWORD = os.getenv("MYSQL_PASSWORD")
MYSQL_HOST = os.getenv("MYSQL_URL", "localhost")
MYSQL_PORT = os.getenv("MYSQL_PORT", "3306")
MYSQL_DB = os.getenv("MYSQL_DB")

# An explicit DATABASE_URL wins; otherwise MySQL when configured, else a local SQLite file.
if os.getenv("DATABASE_URL"):
    DB_URL = os.getenv("DATABASE_URL")
elif MYSQL_DB:
    DB_URL = f"mysql+aiomysql://{MYSQL_USER}:{MYSQL_PASSWORD}@{MYSQL_HOST}:{MYSQL_PORT}/{MYSQL_DB}"
else:
    DB_URL = "sqlite+aiosqlite:///./tictactoe.db"

SQL_ECHO = _env_bool("SQL_ECHO")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# "sentinel" books draws under a single "Draw" key, "both" credits X and O.
DRAW_POLICY = os.getenv("DRAW_POLICY", "sentinel").lower()

GAMES_LIST_LIMIT = int(os.getenv("GAMES_LIST_LIMIT", "50"))
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
