#!filepath: trialflow/config/app_config.py
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from .log_config import LogConfig
from .engine_config import EngineConfig


def project_root() -> str:
    """
    返回项目根目录（基于当前文件位置推导）:
    trialflow/config/app_config.py → trialflow/config → trialflow → project_root
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))


def default_config_path() -> str:
    return os.path.join(os.path.dirname(__file__), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = LogConfig()
    engine: EngineConfig = EngineConfig()

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - 默认使用 trialflow/config/base.yml
        - 不依赖当前工作目录
        - 环境变量覆盖：TRIALFLOW_SEED / TRIALFLOW_LOG_LEVEL
        """
        root = project_root()

        # 1) 先加载 .env（在项目根目录下）；已存在的环境变量优先
        load_dotenv(os.path.join(root, ".env"))

        # 2) 决定配置文件路径
        if path is None:
            path = default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        # 3) 读取 YAML
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        # 4) 从 env 注入覆盖项
        seed = os.getenv("TRIALFLOW_SEED")
        if seed:
            raw.setdefault("engine", {})["seed"] = int(seed)

        level = os.getenv("TRIALFLOW_LOG_LEVEL")
        if level:
            raw.setdefault("log", {})["level"] = level

        return cls(**raw)
