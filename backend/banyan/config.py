from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    banyan_data_dir: Path = Path.home() / ".banyan" / "data"
    sqlite_filename: str = "banyan.db"
    session_size: int = 10
    review_window_seconds: int = 90  # mini-review timer owned by the session runner

    model_config = {"env_prefix": "BANYAN_"}


settings = Settings()
