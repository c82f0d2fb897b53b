from pydantic_settings import BaseSettings
from typing import List
from pydantic import model_validator


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./stocktake.db"
    ENVIRONMENT: str = "development"
    AUTO_CREATE_TABLES: bool = True
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"
    DEBUG: bool = True
    APP_NAME: str = "StockTake"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    ENABLE_REQUEST_ID: bool = True
    ENABLE_REQUEST_LOGGING: bool = True
    READINESS_CHECK_DATABASE: bool = True

    ERP_BASE_URL: str = ""
    ERP_API_TOKEN: str = ""
    ERP_TIMEOUT_SECONDS: float = 30.0
    ERP_BATCH_PATH: str = "/api/Estoque/atualizar-lista"
    MIGRATION_ROLES: str = "admin,manager,supervisor"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def migration_roles_list(self) -> List[str]:
        return [r.strip().lower() for r in self.MIGRATION_ROLES.split(",") if r.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in {"prod", "production"}

    @model_validator(mode="after")
    def validate_production_safety(self):
        if not self.is_production:
            return self

        if "sqlite" in self.DATABASE_URL.lower():
            raise ValueError("SQLite is not allowed when ENVIRONMENT is production.")

        if self.AUTO_CREATE_TABLES:
            raise ValueError("AUTO_CREATE_TABLES must be false in production; use Alembic migrations.")

        if self.ERP_BASE_URL and not self.ERP_API_TOKEN:
            raise ValueError("ERP_API_TOKEN is required when ERP_BASE_URL is set in production.")

        return self


settings = Settings()
