# app/core/config.py

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Настройки базы данных
    DATABASE_USER: str = ""
    DATABASE_PASSWORD: str = ""
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "starmatch"
    # Полный URL, перекрывает части выше (sqlite для тестов и т.п.)
    DATABASE_URL_OVERRIDE: str | None = None

    TELEGRAM_BOT_TOKEN: str
    TELEGRAM_BOT_USERNAME: str
    # Настройки JWT токенов
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 7 дней
    # Максимальный возраст initData (auth_date), 0 отключает проверку
    INIT_DATA_MAX_AGE_SECONDS: int = 60 * 60 * 24
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    ADMIN_TELEGRAM_IDS_STR: str = Field(alias="ADMIN_TELEGRAM_IDS")

    @property
    def ADMIN_TELEGRAM_IDS(self) -> List[int]:
        return [int(admin_id.strip()) for admin_id in self.ADMIN_TELEGRAM_IDS_STR.split(',') if admin_id.strip()]

    BASE_WEBHOOK_URL: str = ""
    TELEGRAM_WEBHOOK_SECRET: str = ""
    MINI_APP_URL: str = "https://localhost"

    # Экономика знакомств
    FILTERED_MATCH_PRICE: int = 15
    REFERRAL_BONUS: int = 5
    STREAK_BONUS_EVERY: int = 3
    REFERRAL_CODE_PREFIX: str = "SM"
    STARS_CURRENCY: str = "XTR"

    # Подбор пар
    MATCH_TTL_HOURS: int = 24
    CANDIDATE_POOL_SIZE: int = 10
    MATCH_HISTORY_LIMIT: int = 20
    ADMIN_USERS_LIMIT: int = 50
    ADMIN_TRANSACTIONS_LIMIT: int = 100

    # Часовой пояс для "локальной полуночи" (стрики) и планировщика
    TIMEZONE: str = "Europe/Moscow"

    LOG_LEVEL: str = "INFO"

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str | None = None

    @property
    def TELEGRAM_WEBHOOK_PATH(self) -> str:
        # Путь, который мы будем слушать. /bot/ префикс для безопасности
        return f"/bot/{self.TELEGRAM_BOT_TOKEN}"

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True)

settings = Settings()
