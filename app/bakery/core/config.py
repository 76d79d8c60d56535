from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    REPORT_CURRENCY: str = "COP"
    REPORT_TIMEZONE: str = "UTC"
    REPORT_DEFAULT_DATE_FIELD: str = "dueDate"
    REPORTS_MAX_DATE_RANGE_DAYS: int = 731
    REPORT_TOP_SELLERS_LIMIT: int = 10
    REPORT_LOWEST_SELLERS_LIMIT: int = 10
    METRICS_ENABLED: bool = True

settings = Settings()
