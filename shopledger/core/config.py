from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    # Aplicación
    APP_NAME: str = "Shop Ledger API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Base de datos
    DATABASE_URL: str = "sqlite:///./shopledger.db"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: List[str] = ["*"]
    CORS_HEADERS: List[str] = ["*"]

    # Tokens emitidos por el servicio de identidad
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080

    # Moneda única usada en los mensajes al empleado
    CURRENCY_SYMBOL: str = "₹"

    # Región por defecto para validar teléfonos de clientes
    DEFAULT_PHONE_REGION: str = "IN"

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True
    )


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()
