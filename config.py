import os
from dataclasses import dataclass

from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when an environment setting cannot be used."""
    pass


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable '{key}' must be an integer, got {value!r}") from None


def _env_flag(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from the environment (and .env when present)."""
    api_key: str = "mysecretapikey"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    log_file: str = "logs.json"
    seed_products: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            api_key=os.getenv("API_KEY", cls.api_key),
            host=os.getenv("HOST", cls.host),
            port=_env_int("PORT", cls.port),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            log_file=os.getenv("LOG_FILE", cls.log_file),
            seed_products=_env_flag("SEED_PRODUCTS", cls.seed_products),
        )
