from .app_config import AppConfig
from .engine_config import EngineConfig
from .log_config import LogConfig

__all__ = ["AppConfig", "EngineConfig", "LogConfig"]
