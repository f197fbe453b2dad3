import os
from dataclasses import dataclass

ENV_MODES = ("production", "development")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Runtime settings read from the container environment."""

    env: str = "production"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    app_name: str = "frontend"

    @property
    def debug(self) -> bool:
        return self.env == "development"

    @property
    def bind(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        environ = os.environ if environ is None else environ

        env = environ.get("APP_ENV", "production").strip().lower()
        if env not in ENV_MODES:
            raise ValueError(f"APP_ENV must be one of {', '.join(ENV_MODES)}, got {env!r}")

        raw_port = environ.get("PORT", "8080")
        try:
            port = int(raw_port)
        except ValueError:
            raise ValueError(f"PORT must be an integer, got {raw_port!r}") from None
        if not 1 <= port <= 65535:
            raise ValueError(f"PORT out of range: {port}")

        log_level = environ.get("LOG_LEVEL", "INFO").strip().upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

        return cls(
            env=env,
            host=environ.get("HOST", "0.0.0.0"),
            port=port,
            log_level=log_level,
            app_name=environ.get("APP_NAME", "frontend"),
        )
