from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    app_name: str = "Task Portal"
    app_env: str = Field("dev", alias="APP_ENV")
    secret_key: str = Field("dev-secret-change", alias="SECRET_KEY")
    access_token_expire_minutes: int = Field(480, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    # bcrypt cost factor for account and file passwords
    bcrypt_rounds: int = Field(10, alias="BCRYPT_ROUNDS")

    upload_dir: str = Field("uploads", alias="UPLOAD_DIR")
    max_upload_mb: int = Field(50, alias="MAX_UPLOAD_MB")

    rate_limit_window_seconds: int = Field(60, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_max_calls: int = Field(30, alias="RATE_LIMIT_MAX_CALLS")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    sso_simulated: bool = Field(True, alias="SSO_SIMULATED")
    # {"google": {"token_url": ..., "userinfo_url": ..., "client_id": ..., "client_secret": ..., "redirect_uri": ...}}
    sso_endpoints: dict[str, dict[str, str]] = Field(default_factory=dict, alias="SSO_ENDPOINTS")

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
