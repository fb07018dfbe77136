from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "SmartExpenseAI"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_EXPENSES_TABLE: str = Field(
        default="smart-expense-expenses", validation_alias="DYNAMO_TABLE_EXPENSES"
    )

    # JWT Authentication (tokens are issued by the auth service)
    JWT_SECRET_KEY: str = Field(
        default="dev-only-secret-replace-me-with-a-long-random-value", validation_alias="JWT_SECRET"
    )
    JWT_ALGORITHM: str = "HS256"

    # Gemini. Leaving the key unset switches the AI endpoints to deterministic output.
    GEMINI_API_KEY: Optional[str] = Field(default=None)
    GEMINI_ANALYSIS_MODEL: str = Field(default="gemini-2.5-flash")
    GEMINI_INSIGHTS_MODEL: str = Field(default="gemini-2.5-flash-lite")

    # Budget recommendations look at this many trailing months
    BUDGET_LOOKBACK_MONTHS: int = Field(default=3)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
