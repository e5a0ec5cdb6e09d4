import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    """Application configuration read from environment variables."""

    # Telegram
    bot_token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    # Every character here is accepted as a command prefix ("!bal", "/bal")
    command_prefix: str = os.getenv("COMMAND_PREFIX", "!/")

    # Database
    database_url: str = os.getenv(
        "DATABASE_URL", "sqlite+aiosqlite:///./data/dating_room.db"
    )

    # Economy
    starting_wallet: int = int(os.getenv("STARTING_WALLET", "1000"))

    # Challenges
    challenge_timeout_seconds: int = int(
        os.getenv("CHALLENGE_TIMEOUT_SECONDS", "300")
    )
    sweep_interval_seconds: int = int(
        os.getenv("SWEEP_INTERVAL_SECONDS", "60")
    )

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_dir: str = os.getenv("LOG_DIR", "logs")


settings = Settings()
