import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

PLACEHOLDER_KEY = "your_api_key_here"


def _as_bool(val, default: bool = False) -> bool:
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


def _as_int(val, default: int) -> int:
    try:
        return int(val) if val not in (None, "") else default
    except ValueError:
        return default


class Settings:
    def __init__(self, environ=None) -> None:
        env = os.environ if environ is None else environ
        key = (env.get("GOOGLE_MAPS_API_KEY") or "").strip()
        self.GOOGLE_MAPS_API_KEY = key if key and key != PLACEHOLDER_KEY else None

        self.SEARCH_RADIUS_M = _as_int(env.get("SEARCH_RADIUS_M"), 1500)
        self.MATRIX_BATCH_SIZE = _as_int(env.get("MATRIX_BATCH_SIZE"), 25)
        self.DEFAULT_MAX_RESULTS = _as_int(env.get("DEFAULT_MAX_RESULTS"), 20)
        self.MAX_RESULTS_LIMIT = _as_int(env.get("MAX_RESULTS_LIMIT"), 60)

        self.MAPS_TIMEOUT_S = _as_int(env.get("MAPS_TIMEOUT_S"), 10)
        self.MAPS_MAX_WORKERS = _as_int(env.get("MAPS_MAX_WORKERS"), 10)
        self.RESPONSE_CACHE_ENABLED = _as_bool(env.get("RESPONSE_CACHE_ENABLED"), True)

        self.LOG_LEVEL = (env.get("LOG_LEVEL") or "INFO").upper()
        self.LOG_FILE = env.get("LOG_FILE", "app.log")

        self.HOST = env.get("HOST", "0.0.0.0")
        self.PORT = _as_int(env.get("PORT"), 5001)

    @property
    def maps_configured(self) -> bool:
        return self.GOOGLE_MAPS_API_KEY is not None


settings = Settings()
