from pathlib import Path
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings

import os

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Cave generator settings pulled from CAVEGEN_* environment variables."""

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (console or json)")

    # Map Generation Configuration
    default_map_length: int = Field(default=80, description="Default map length (tiles along x)")
    default_map_width: int = Field(default=60, description="Default map width (tiles along y)")
    default_density: float = Field(default=0.45, description="Default initial wall density")
    default_seed: int = Field(default=0, description="Seed used when none is given")

    # Meshing Configuration
    max_map_size: int = Field(default=200, description="Max tiles per side of a single meshed chunk")
    chunk_size: int = Field(default=150, description="Squares per side when subdividing large maps")

    class Config:
        env_prefix = "CAVEGEN_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Instantiate singleton settings object
settings = Settings()
