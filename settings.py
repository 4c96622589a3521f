# settings.py
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    time_zone: str = "UTC"
    max_users: int = 10
    timeline_timeout_ms: int = 5000
    store_file: Path = Path("data") / "intervals.json"
    port: int = 3978
    log_level: str = "INFO"

    @property
    def timeline_timeout(self) -> float:
        return self.timeline_timeout_ms / 1000.0


def load_settings() -> Settings:
    data_dir = Path(os.getenv("DATA_DIR", "data"))
    return Settings(
        time_zone=os.getenv("TIME_ZONE", "UTC"),
        max_users=int(os.getenv("MAX_USERS", "10")),
        timeline_timeout_ms=int(os.getenv("TIMELINE_TIMEOUT_MS", "5000")),
        store_file=Path(os.getenv("STORE_FILE", str(data_dir / "intervals.json"))),
        port=int(os.getenv("PORT", "3978")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
