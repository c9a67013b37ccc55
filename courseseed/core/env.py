import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def load_env() -> None:
    """Load the dotenv file named by ENV_FILE, relative to the project root."""
    env_file = os.getenv("ENV_FILE")
    if env_file:
        load_dotenv(BASE_DIR / env_file)
