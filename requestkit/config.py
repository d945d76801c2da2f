from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):

    UPLOAD_DIR: str = "./uploads"
    STATIC_DIR: str = "./static"

    # 1 GiB total multipart body
    MAX_UPLOAD_SIZE: int = 1024 * 1024 * 1024
    # empty list means every sniffed type is accepted
    ALLOWED_FILE_TYPES: List[str] = []
    RENAME_UPLOADS: bool = True

    MAX_JSON_SIZE: int = 1024 * 1024
    ALLOW_UNKNOWN_FIELDS: bool = False

    REMOTE_TIMEOUT: float = 10.0
    # hosts POST /json/push may forward to; empty disables forwarding
    REMOTE_ALLOWED_HOSTS: List[str] = []

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
