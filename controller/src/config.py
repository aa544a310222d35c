from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    database_url: str = "sqlite:///./gatekeeper.db"
    redis_url: str = "redis://localhost:6379/0"
    
    # Executor settings
    executor_backend: str = "local"  # "local" or "kubernetes"
    source_dir: str = "."  # Used when a trigger carries no clone URL
    step_timeout: int = 1800  # 30 minutes default
    max_parallel_environments: int = 0  # 0 means no limit
    
    # Kubernetes settings
    k8s_namespace: str = "gatekeeper"
    k8s_in_cluster: bool = False  # Set True when running inside K8s
    job_ttl_after_finished: int = 300  # Clean up jobs after 5 min
    default_image_linux: str = "rust:latest"
    default_image_windows: str = "mcr.microsoft.com/windows/servercore:ltsc2022"
    log_tail_lines: int = 1000
    
    class Config:
        env_file = ".env"

@lru_cache()
def get_settings() -> Settings:
    return Settings()
