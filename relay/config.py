"""Relay configuration from environment variables."""

import os
from pathlib import Path

# Load .env if present
env_file = Path(__file__).parent.parent / ".env"
if env_file.exists():
    with open(env_file) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                os.environ.setdefault(key.strip(), value.strip())


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

# CORS Configuration
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

# Socket.IO heartbeat
PING_TIMEOUT = int(os.getenv("PING_TIMEOUT", "60"))
PING_INTERVAL = int(os.getenv("PING_INTERVAL", "25"))

# Chat history replayed to new connections
HISTORY_ENABLED = _flag("HISTORY_ENABLED", "true")

# Avatars
AVATAR_RESOLVE = _flag("AVATAR_RESOLVE", "false")
AVATAR_TIMEOUT_SECONDS = float(os.getenv("AVATAR_TIMEOUT_SECONDS", "2.0"))
DEFAULT_AVATAR_URL = os.getenv(
    "DEFAULT_AVATAR_URL", "https://www.gravatar.com/avatar/?d=mp"
)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE") or None
LOG_FORMAT = os.getenv(
    "LOG_FORMAT",
    "%(asctime)s [%(levelname)s] %(name)s [%(connection_id)s] %(message)s",
)

# Debug mode
DEBUG = _flag("DEBUG", "false")
