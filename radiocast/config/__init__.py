from .env_config import AppSettings, EnvConfig

__all__ = [
    "AppSettings",
    "EnvConfig",
]
