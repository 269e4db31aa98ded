# edara/core/config.py
from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === MongoDB ===
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "edara"
    mongo_tls: bool = False

    # === Seguridad / JWT ===
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    seed_admin_password: str = "admin123"

    # === Rate limits ===
    login_rate_limit: str = "5/minute"
    action_rate_limit: str = "20/minute"

    # === CORS ===
    # Acepta JSON (["http://a","https://b"]) o lista separada por comas ("http://a,https://b")
    cors_origins: Union[str, List[str]] = ""

    # === Paginación ===
    max_page_size: int = 50

    # === Links en correos / páginas de resultado ===
    public_base_url: str = "http://localhost:8000"
    app_home_url: str = "http://localhost:5173"

    # === SMTP ===
    smtp_host: Optional[str] = None
    smtp_port: int = 465
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_sender: str = "Edara Support <no-reply@localhost>"
    smtp_use_ssl: bool = True

    # === Push ===
    push_webhook_url: Optional[str] = None

    log_level: str = "INFO"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if v is None:
            return []
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    data = json.loads(s)
                    if isinstance(data, list):
                        return [str(x).strip() for x in data if str(x).strip()]
                except ValueError:
                    # si parece JSON pero está mal formado, caemos al split por comas
                    pass
            return [item.strip() for item in s.split(",") if item.strip()]
        return [str(v).strip()] if str(v).strip() else []


# Instancia global usada por main.py, servicios y rutas
settings = Settings()
