import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def engine_options(uri: str, timeout: int) -> dict:
    """Ограничение времени ожидания на уровне подключения к БД."""
    options = {"pool_pre_ping": True}
    if uri.startswith("sqlite"):
        options["connect_args"] = {"timeout": timeout}
        return options

    options["pool_timeout"] = timeout
    if uri.startswith("postgresql"):
        options["connect_args"] = {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }
    return options


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "super-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///store.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    API_PREFIX = os.environ.get("API_PREFIX", "/api")
    CORS_ORIGIN = os.environ.get("CORS_ORIGIN", "*")

    # 24 часа
    TOKEN_TTL_SECONDS = int(os.environ.get("TOKEN_TTL_SECONDS", 24 * 60 * 60))

    DB_TIMEOUT = int(os.environ.get("DB_TIMEOUT", 10))

    RENTAL_SWEEP_ENABLED = _flag("RENTAL_SWEEP_ENABLED")
    RENTAL_SWEEP_MINUTES = int(os.environ.get("RENTAL_SWEEP_MINUTES", 5))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
