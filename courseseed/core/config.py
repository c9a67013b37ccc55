from pydantic_settings import BaseSettings, SettingsConfigDict

# Ensure env file is loaded before Settings() reads environment variables
from courseseed.core.env import load_env
load_env()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=None,  # we load via courseseed.core.env (ENV_FILE)
        extra="ignore",
        case_sensitive=True,
    )

    DATABASE_URL: str = "sqlite:///./courseseed.db"

    # Directory holding languages.json, courses.json, lessons/, quizzes/, exercises/
    CATALOG_DIR: str = "./catalog"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    SQL_ECHO: bool = False


settings = Settings()
