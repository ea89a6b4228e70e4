import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    storage_local_root: str
    storage_public_base_url: str
    storage_limit_mb: int
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    whatsapp_token: str
    whatsapp_phone_number_id: str
    whatsapp_api_base: str
    whatsapp_timeout_seconds: int | None


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int | None) -> int | None:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///tailorbook.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_local_root=_getenv("STORAGE_LOCAL_ROOT", ""),
        storage_public_base_url=_getenv("STORAGE_PUBLIC_BASE_URL", ""),
        storage_limit_mb=_getenv_int("STORAGE_LIMIT_MB", 1024) or 1024,
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", "customer-images"),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        whatsapp_token=_getenv("WHATSAPP_TOKEN", ""),
        whatsapp_phone_number_id=_getenv("WHATSAPP_PHONE_NUMBER_ID", ""),
        whatsapp_api_base=_getenv("WHATSAPP_API_BASE", "https://graph.facebook.com/v18.0"),
        whatsapp_timeout_seconds=_getenv_int("WHATSAPP_TIMEOUT_SECONDS", None),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_LOCAL_ROOT": s.storage_local_root,
        "STORAGE_PUBLIC_BASE_URL": s.storage_public_base_url,
        "STORAGE_LIMIT_MB": s.storage_limit_mb,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "WHATSAPP_TOKEN": s.whatsapp_token,
        "WHATSAPP_PHONE_NUMBER_ID": s.whatsapp_phone_number_id,
        "WHATSAPP_API_BASE": s.whatsapp_api_base,
        "WHATSAPP_TIMEOUT_SECONDS": s.whatsapp_timeout_seconds,
        # photo uploads are sent in batches from phones (50MB)
        "MAX_CONTENT_LENGTH": 50 * 1024 * 1024,
    }
