from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./surveyco.db"
    db_isolation_level: str = "SERIALIZABLE"
    db_echo: bool = False
    create_tables: bool = True
    cors_origins: str = "*"  # comma separated
    log_level: str = "INFO"
    exit_on_fatal_error: bool = True

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
