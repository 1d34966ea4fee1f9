from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./feedesk.db", alias="DATABASE_URL")

    sheet_api_url: str = Field(..., alias="SHEET_API_URL")
    sheet_api_key: str = Field("feemgr-2025", alias="SHEET_API_KEY")
    sheet_timeout_seconds: float = Field(30.0, alias="SHEET_TIMEOUT_SECONDS")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(720, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    principal_access_code: str = Field("principal-2025", alias="PRINCIPAL_ACCESS_CODE")
    accounts_access_codes: str = Field("account-2025,accounts-2025", alias="ACCOUNTS_ACCESS_CODES")
    teacher_code_prefix: str = Field("teacher-", alias="TEACHER_CODE_PREFIX")

    default_payment_mode: str = Field("Cash", alias="DEFAULT_PAYMENT_MODE")
    desk_reset_delay_seconds: Optional[float] = Field(2.0, alias="DESK_RESET_DELAY_SECONDS")
    notice_seconds: float = Field(4.0, alias="NOTICE_SECONDS")
    phone_country_code: str = Field("91", alias="PHONE_COUNTRY_CODE")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def accounts_codes(self) -> List[str]:
        return [c.strip().lower() for c in self.accounts_access_codes.split(",") if c.strip()]


settings = Settings()
