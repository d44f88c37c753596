"""
Configuration - every UniHub env var (Mongo, JWT, OTP lifetimes, mail,
Cloudinary) is read here through pydantic-settings and nowhere else.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # MongoDB
    mongodb_uri: str = "mongodb://127.0.0.1:27017"
    mongodb_db: str = "unihub"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Sessions / OTP
    refresh_token_expire_days: int = 30
    otp_expire_minutes: int = 5
    university_otp_expire_minutes: int = 5

    # Email: "console" only logs, "brevo" uses the HTTP API, "smtp" uses smtplib
    mail_backend: str = "console"
    mail_sender_name: str = "UniHub"
    mail_sender_email: str = "no-reply@unihub.local"
    brevo_api_key: str = ""
    brevo_api_url: str = "https://api.brevo.com/v3/smtp/email"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    mail_timeout_sec: float = 10.0

    # Cloudinary
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "unimarket"
    upload_max_mb: int = 5
    upload_timeout_sec: float = 30.0

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
