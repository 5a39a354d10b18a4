import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    # --- General ---
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JSON_SORT_KEYS = False
    # Let JWT errors reach the JWTManager handlers instead of the Flask-RESTful 500 handler
    PROPAGATE_EXCEPTIONS = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # --- Database Configuration ---
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL", "sqlite:///" + os.path.join(basedir, "storefront.db")
    ).replace("postgres://", "postgresql://")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- Store ---
    STORE_TIMEZONE = os.getenv("STORE_TIMEZONE", "America/Sao_Paulo")
    STORE_STATUS_POLL_SECONDS = int(os.getenv("STORE_STATUS_POLL_SECONDS", "60"))
    STORE_STATUS_BROADCAST = os.getenv("STORE_STATUS_BROADCAST", "1") == "1"
    KITCHEN_LATE_MINUTES = int(os.getenv("KITCHEN_LATE_MINUTES", "20"))

    # --- Geocoding (Nominatim compatible) ---
    GEOCODING_URL = os.getenv("GEOCODING_URL", "https://nominatim.openstreetmap.org/search")
    GEOCODING_USER_AGENT = os.getenv("GEOCODING_USER_AGENT", "storefront-backend")
    GEOCODING_TIMEOUT = float(os.getenv("GEOCODING_TIMEOUT", "10"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    STORE_STATUS_BROADCAST = False
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
