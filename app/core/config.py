"""Configuración central de la aplicación (Pydantic Settings).

- Carga variables desde .env en la raíz del backend.
- Agrupa ajustes por área: App, CORS, Mongo, Auth/JWT, Cookies, Storage (Cloudinary).
"""
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field
try:
    # pydantic-settings v2 style
    from pydantic_settings import SettingsConfigDict  # type: ignore
except Exception:  # pragma: no cover
    SettingsConfigDict = None  # type: ignore
from pathlib import Path

# Resuelve el .env ubicado en la raíz del backend (independiente del CWD)
ENV_FILE = Path(__file__).resolve().parents[2] / ".env"

class Settings(BaseSettings):
    """Conjunto de variables de configuración con valores por defecto razonables.

    Nota: los valores pueden sobreescribirse vía variables de entorno (.env).
    """
    # App
    app_name: str = "Visitrack API"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # CORS (frontend Next.js en localhost)
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    cors_allow_any: bool = False  # Permite todos los orígenes (usa con cuidado)

    # Mongo
    mongo_uri: str = Field(
        "mongodb://localhost:27017",
        validation_alias=AliasChoices("MONGO_URI", "MONGODB_URI"),
    )
    mongo_db: str = "visitrack"
    # TLS relax options (dev only)
    mongo_tls: bool = False
    mongo_tls_insecure: bool = False  # allows invalid certs
    mongo_tls_allow_invalid_hostnames: bool = False

    # Auth / JWT
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "visitrack"
    jwt_access_audience: str = "visitrack-users"
    jwt_refresh_audience: str = "visitrack-refresh"
    access_token_expire_minutes: int = 7 * 24 * 60
    refresh_token_expire_days: int = 30

    # Cookies de sesión
    access_cookie_name: str = "accessToken"
    refresh_cookie_name: str = "refreshToken"

    # Storage (Cloudinary)
    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None
    cloudinary_api_base_url: str = "https://api.cloudinary.com"
    storage_default_folder: str = "badge-templates"
    storage_timeout_seconds: float = 30.0
    # 0 = una sola llamada; >0 reintenta sólo fallos transitorios (5xx/red)
    storage_upload_retries: int = Field(
        0,
        validation_alias=AliasChoices("VISITRACK_STORAGE_RETRIES", "STORAGE_UPLOAD_RETRIES"),
    )
    upload_max_bytes: int = 10 * 1024 * 1024
    upload_file_max_bytes: int = 5 * 1024 * 1024
    upload_allowed_formats: list[str] = ["jpg", "jpeg", "png", "gif", "webp"]
    badge_folder: str = "badge-templates"
    badge_allowed_formats: list[str] = ["jpg", "jpeg", "png", "gif"]
    # Calidad/formato automáticos (equivale a quality=auto + fetch_format=auto)
    badge_transformation: str = "q_auto/f_auto"
    # QR de gafete: siempre PNG dentro de la carpeta de plantillas
    qr_code_folder: str = "badge-templates/qr-codes"
    qr_code_format: str = "png"
    file_upload_folder: str = "visitrack"

    # --- Utilidades derivadas / helpers ---
    @property
    def api_prefix_normalized(self) -> str:
        """Devuelve `api_prefix` con formato consistente.

        - Siempre inicia con '/'
        - Sin '/' final (excepto cuando es solo '/')
        - Si está vacío, devuelve ""
        """
        pref = (self.api_prefix or "").strip()
        if not pref:
            return ""
        if not pref.startswith('/'):
            pref = '/' + pref
        if len(pref) > 1 and pref.endswith('/'):
            pref = pref[:-1]
        return pref

    @property
    def access_token_ttl_seconds(self) -> int:
        return int(self.access_token_expire_minutes) * 60

    @property
    def refresh_token_ttl_seconds(self) -> int:
        return int(self.refresh_token_expire_days) * 24 * 60 * 60

    @property
    def cloudinary_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)

    # pydantic-settings configuration (v2)
    if SettingsConfigDict is not None:
        model_config = SettingsConfigDict(
            env_file=str(ENV_FILE),
            env_file_encoding="utf-8",
            case_sensitive=False,
            extra="ignore",  # no fallar si hay variables no usadas
            populate_by_name=True,
        )
    else:
        # Back-compat for older pydantic-settings
        class Config:  # type: ignore
            env_file = str(ENV_FILE)
            case_sensitive = False


settings = Settings()
