"""Process settings, read from the environment (a .env file is honoured)"""
import os

from dotenv import load_dotenv

load_dotenv()

# JWT
SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-club-secret")
ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Password hashing
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Snapshot file; empty keeps the state in memory only
SNAPSHOT_PATH: str = os.getenv("SNAPSHOT_PATH", "data/club_snapshot.json")

# Comma separated NotificationChannel values
NOTIFICATION_CHANNELS: list = [
    ch.strip() for ch in os.getenv("NOTIFICATION_CHANNELS", "EMAIL,WHATSAPP_BUSINESS").split(",") if ch.strip()
]

# Simulated network latency of the external collaborators
SOCIO_LOOKUP_LATENCY_SECONDS: float = float(os.getenv("SOCIO_LOOKUP_LATENCY_SECONDS", "0.45"))
GATEWAY_LATENCY_SECONDS: float = float(os.getenv("GATEWAY_LATENCY_SECONDS", "0.65"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
