import os
from dataclasses import dataclass, replace

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///data/application.db"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    log_file: str = "logs/pokemed_quest.log"
    ascii_art_dir: str = "ascii_art"
    bcrypt_rounds: int = 12

    def override(self, **changes) -> "Settings":
        """Return a copy with every non-None value in ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def get_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE", "logs/pokemed_quest.log"),
        ascii_art_dir=os.getenv("ASCII_ART_DIR", "ascii_art"),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
    )
