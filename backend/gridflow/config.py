"""Application configuration via environment variables."""
from pathlib import Path
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    app_name: str = "GridFlow"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    custom_nodes_dir: Path = PROJECT_ROOT / "custom-nodes"
    runner_url: str = "http://127.0.0.1:8000/api/custom-nodes/run"
    runner_timeout: float = 120.0
    python_candidates: list[str] = ["python3", "python"]
    history_limit: int = 1000
    max_results: int = 20
    log_tail: int = 200

    model_config = {"env_prefix": "GRIDFLOW_"}


settings = Settings()
settings.custom_nodes_dir.mkdir(parents=True, exist_ok=True)
