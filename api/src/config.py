from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List

class Settings(BaseSettings):
    redis_url: str = "redis://localhost:6379/0"
    github_webhook_secret: str = ""
    github_token: str = ""
    github_api_url: str = "https://api.github.com"
    pipeline_config_paths: List[str] = [
        ".pipeline.yml",
        ".pipeline.yaml",
        "pipeline.yml",
        "pipeline.yaml",
    ]
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    class Config:
        env_file = ".env"

@lru_cache()
def get_settings() -> Settings:
    return Settings()
