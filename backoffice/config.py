# backoffice/config.py
import os
from dotenv import load_dotenv

load_dotenv()

ENV = os.getenv("ENV", "dev").lower()

SECRET_KEY = os.getenv("SECRET_KEY")
if ENV == "prod":
    # En prod: clave obligatoria y suficientemente larga (>=32 bytes)
    if not SECRET_KEY or len(SECRET_KEY) < 32:
        raise RuntimeError("SECRET_KEY requerido en prod (>=32 bytes)")
if not SECRET_KEY:
    SECRET_KEY = "dev-secret-key-change-me"

# JWT
JWT_ALGORITHM = os.getenv("JWT_ALGO", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_MINS", "60"))

# Base de datos
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./backoffice.db")
# 👇 Normaliza scheme si viene como 'postgres://'
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Listados de pagos
PAYMENTS_PAGE_SIZE = int(os.getenv("PAYMENTS_PAGE_SIZE", "10"))
PAYMENTS_MAX_PAGE_SIZE = int(os.getenv("PAYMENTS_MAX_PAGE_SIZE", "100"))

_raw_origins = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]
