import json
import os
from typing import Dict, List

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EGGS = {
    "linux": {
        "egg_id": 1,
        "nest_id": 1,
        "docker_image": "ghcr.io/pterodactyl/yolks:java_17",
        "startup": "java -Xms128M -Xmx{{SERVER_MEMORY}}M -jar server.jar",
    },
    "windows": {
        "egg_id": 5,
        "nest_id": 1,
        "docker_image": "ghcr.io/parkervcp/wine:latest",
        "startup": "./samp-server.exe",
    },
    "nodejs": {
        "egg_id": 15,
        "nest_id": 5,
        "docker_image": "ghcr.io/pterodactyl/yolks:nodejs_18",
        "startup": "npm start",
    },
}


class Settings(BaseSettings):
    APP_ENV: str = "dev"
    SECRET_KEY: str = "change_this_secret_key_random_string"
    LOG_LEVEL: str = "INFO"
    PORT: int = 3000

    # JSON record store
    DB_PATH: str = "./database"
    CATALOG_PATH: str | None = None

    # Order windows (seconds)
    ORDER_TTL_SECONDS: int = 1800
    CANCEL_MIN_WAIT_SECONDS: int = 120

    # Pakasir payment gateway
    PAKASIR_SANDBOX: bool = True
    PAKASIR_PROJECT_SLUG: str = "your_project_slug"
    PAKASIR_API_KEY: str = "your_pakasir_api_key"
    PAKASIR_BASE_URL: str = "https://app.pakasir.com/api"
    PAKASIR_TIMEOUT: float = 30
    SETTLED_STATUSES: str = "completed,success,settlement"  # comma separated

    # Pterodactyl panel (application API key, not an account key)
    PTERODACTYL_URL: str = "https://panel.yourdomain.com"
    PTERODACTYL_API_KEY: str = "ptla_your_application_api_key"
    PTERODACTYL_NODE_ID: int = 1
    PTERODACTYL_EGGS: Dict[str, Dict] = DEFAULT_EGGS
    PTERODACTYL_TIMEOUT: float = 30

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("PTERODACTYL_EGGS", mode="before")
    @classmethod
    def parse_eggs(cls, v):
        if v is None or v == "":
            return DEFAULT_EGGS
        if isinstance(v, str):
            return json.loads(v)
        return v

    @field_validator("PTERODACTYL_URL", "PAKASIR_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def serverless_db_path(self):
        # serverless filesystems are read-only except /tmp, and /tmp is wiped on cold start
        if os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME"):
            self.DB_PATH = "/tmp/database"
        return self

    @property
    def settled_statuses(self) -> List[str]:
        return [x.strip().lower() for x in self.SETTLED_STATUSES.split(",") if x.strip()]


settings = Settings()
