from typing import Literal

from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    app_name: str = Field(default="Chattrix")
    app_env: str = Field(default="development")
    app_debug: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    jwt_secret: str = Field(default="change_me_in_prod_chattrix_secret_key")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 24)
    bcrypt_rounds: int = Field(default=12)

    database_url: str = Field(default="postgresql+psycopg://app:app@db:5432/app")

    # Room allocator
    room_id_attempts: int = Field(default=10, ge=1)

    # Scheduled delivery
    delivery_failure_policy: Literal["silent", "surface"] = Field(default="silent")
    scheduler_catch_up: bool = Field(default=False)

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()
