from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongo_uri: str
    db_name: str

    # JWT
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    # Password hashing
    bcrypt_rounds: int = 12

    # Folder traversal bound (walk to root, breadcrumbs)
    max_folder_depth: int = 64

    # HTTP
    api_prefix: str = "/api"
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()
