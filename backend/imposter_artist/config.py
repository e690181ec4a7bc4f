import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Game
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "8"))
    MAX_ROUNDS = int(os.environ.get("MAX_ROUNDS", "3"))
    ROOM_CODE_LENGTH = int(os.environ.get("ROOM_CODE_LENGTH", "6"))

    # Generators ("local" or "openai")
    GENERATOR = os.environ.get("GENERATOR", "local").strip().lower()
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_IMAGE_MODEL = os.environ.get("OPENAI_IMAGE_MODEL", "gpt-image-1")
