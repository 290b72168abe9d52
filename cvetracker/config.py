import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

BACKENDS = ("database", "memory")

PUBLIC_DIR = Path(__file__).resolve().parent / "public"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./cvetracker.db"
    store_backend: str = "database"
    seed_samples: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    public_dir: Path = PUBLIC_DIR

    def __post_init__(self):
        if self.store_backend not in BACKENDS:
            raise ValueError(
                f"STORE_BACKEND must be one of {', '.join(BACKENDS)}, got {self.store_backend!r}"
            )

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment, reading ``.env`` if present."""
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            store_backend=os.getenv("STORE_BACKEND", cls.store_backend).lower(),
            seed_samples=_env_flag("SEED_SAMPLES"),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", str(cls.port))),
        )
