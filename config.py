import os
import sys
from decouple import config, RepositoryEnv, Config

# When running as a PyInstaller bundle, .env lives next to the executable
if getattr(sys, "frozen", False):
    os.chdir(os.path.dirname(sys.executable))

# Force UTF-8 reading of .env on Windows (default cp1252 breaks on special chars)
_env_path = os.path.join(os.getcwd(), ".env")
if os.path.exists(_env_path):
    _config = Config(RepositoryEnv(_env_path, encoding="utf-8"))
else:
    _config = config  # fallback to default AutoConfig

def cfg(key, **kwargs):
    """Read config value, preferring env vars over .env file."""
    env_val = os.environ.get(key)
    if env_val is not None:
        cast = kwargs.get("cast")
        return cast(env_val) if cast else env_val
    return _config(key, **kwargs)

class Settings:
    TRIP_API_URL: str = cfg("TRIP_API_URL", default="http://localhost:8889/api")
    TRIP_API_TIMEOUT: float = cfg("TRIP_API_TIMEOUT", default=30.0, cast=float)
    SECRET_KEY: str = cfg("SECRET_KEY", default="")
    ALGORITHM: str = cfg("ALGORITHM", default="HS256")
    ALLOWED_ORIGINS: str = cfg("ALLOWED_ORIGINS", default="http://localhost:5173")
    # "opening" -> single signed openingBalance, "outstanding" -> amount + debit/credit
    BALANCE_STYLE: str = cfg("BALANCE_STYLE", default="opening")
    # "timestamp" -> BILLyyMMddHHmmss, "random" -> BILL + 6 digits
    BILL_NUMBER_STYLE: str = cfg("BILL_NUMBER_STYLE", default="timestamp")
    COMPANY_NAME: str = cfg("COMPANY_NAME", default="RCC AND TRADING COMPANY")
    CURRENCY: str = cfg("CURRENCY", default="Rs.")

    def __init__(self):
        if not self.SECRET_KEY and os.getenv("ENV", "development") == "production":
            raise RuntimeError("SECRET_KEY must be set in production. It must match the key the trip backend signs tokens with.")

settings = Settings()
