"""
gourmetclick/config.py - Application configuration and Firebase initialization.

Settings are loaded from the environment (and `.env`) with pydantic-settings.
Firebase Admin SDK is initialised on first use so that importing modules never
needs credentials; routers receive the Firestore client and the Storage bucket
through the `get_db` / `get_bucket` dependencies.
"""
import logging
from typing import List, Optional

import firebase_admin
from firebase_admin import credentials, firestore, storage
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("gourmetclick.config")


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""
    firebase_cred_file: str = Field('firebase_service_account.json', description="Service account JSON path")
    firebase_project_id: str = Field('', description="Firebase project id")
    firebase_storage_bucket: str = Field('', description="Default Cloud Storage bucket")

    # Firebase credentials from environment variables (Cloud Run)
    firebase_private_key_id: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_client_id: Optional[str] = None
    firebase_auth_uri: Optional[str] = None
    firebase_token_uri: Optional[str] = None
    firebase_auth_provider_x509_cert_url: Optional[str] = None
    firebase_client_x509_cert_url: Optional[str] = None

    firebase_web_api_key: str = Field('', description="Web API key used by the password login proxy")
    firestore_collection_prefix: str = Field('', description="Prefix for every collection name (staging, tests)")

    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: str = Field('*', description="Comma-separated list or '*' for all")

    pin_secret: str = Field('change-me', description="HMAC key for staff PIN digests")
    orphan_sweep_minutes: int = Field(15, ge=0, description="Duplicate cash session sweep period, 0 disables")

    image_max_bytes: int = 5 * 1024 * 1024
    image_allowed_types: str = "image/jpeg,image/jpg,image/png,image/webp,image/gif"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def allowed_image_types(self) -> List[str]:
        return [t.strip() for t in self.image_allowed_types.split(",") if t.strip()]

    @property
    def cors_origins(self) -> List[str]:
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",")]


# Load settings from environment (.env file, etc.)
settings = Settings()


def collection_name(name: str) -> str:
    """Prefix-aware collection name."""
    prefix = (settings.firestore_collection_prefix or "").strip()
    return f"{prefix}{name}" if prefix else name


_firebase_app = None


def init_firebase():
    """Initialise the Firebase Admin SDK once and return the app."""
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app

    if all([
        settings.firebase_private_key_id,
        settings.firebase_private_key,
        settings.firebase_client_email,
        settings.firebase_client_id,
        settings.firebase_auth_uri,
        settings.firebase_token_uri,
        settings.firebase_auth_provider_x509_cert_url,
        settings.firebase_client_x509_cert_url,
    ]):
        cred = credentials.Certificate({
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key_id": settings.firebase_private_key_id,
            "private_key": settings.firebase_private_key.replace("\\n", "\n"),
            "client_email": settings.firebase_client_email,
            "client_id": settings.firebase_client_id,
            "auth_uri": settings.firebase_auth_uri,
            "token_uri": settings.firebase_token_uri,
            "auth_provider_x509_cert_url": settings.firebase_auth_provider_x509_cert_url,
            "client_x509_cert_url": settings.firebase_client_x509_cert_url,
        })
    else:
        # Service account file (local development)
        cred = credentials.Certificate(settings.firebase_cred_file)

    try:
        _firebase_app = firebase_admin.initialize_app(cred, {
            'projectId': settings.firebase_project_id,
            'storageBucket': settings.firebase_storage_bucket,
        })
    except ValueError as e:
        if "already exists" in str(e):
            _firebase_app = firebase_admin.get_app()
        else:
            raise
    logger.info("Firebase initialised for project %s", settings.firebase_project_id)
    return _firebase_app


def get_db():
    """FastAPI dependency: Firestore client."""
    init_firebase()
    return firestore.client()


def get_bucket():
    """FastAPI dependency: default Storage bucket."""
    init_firebase()
    return storage.bucket()
