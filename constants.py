import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "on", "1", "yes")


REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
REDIS_DB = int(os.getenv("REDIS_DB", 0))

JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = int(os.getenv("JWT_EXPIRY_HOURS", 24))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))
COOKIE_SECURE = _flag("COOKIE_SECURE", "false")
TOKEN_COOKIE = "token"

FACE_DESCRIPTOR_LENGTH = int(os.getenv("FACE_DESCRIPTOR_LENGTH", 128))
FACE_MATCH_THRESHOLD = float(os.getenv("FACE_MATCH_THRESHOLD", "0.9"))

CAMPUS_LATITUDE = float(os.getenv("CAMPUS_LATITUDE", "28.6139"))
CAMPUS_LONGITUDE = float(os.getenv("CAMPUS_LONGITUDE", "77.2090"))
CAMPUS_RADIUS_METERS = float(os.getenv("CAMPUS_RADIUS_METERS", "200"))
GEOFENCE_ENFORCED = _flag("GEOFENCE_ENFORCED", "true")

CHAT_HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", 200))
SOCKET_AUTH_REQUIRED = _flag("SOCKET_AUTH_REQUIRED", "false")
SOCKET_QUEUE_SIZE = int(os.getenv("SOCKET_QUEUE_SIZE", 256))

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
