#!filepath: trialflow/utils/logger.py
import os
import sys
from functools import wraps
from time import perf_counter
from typing import Callable, Optional

from loguru import logger

CONSOLE_FORMAT = "{time:HH:mm:ss.SSS} | {level:<7} | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message}"


class Logging:
    """
    实验运行日志模块（loguru）
    ---------------------------------------
    - 控制台（stderr）始终输出，方便实验员盯屏
    - log_dir 非空时追加按日期切割的文件日志（session 结束后可回溯）
    - 组件日志统一带 [Tag] 前缀：[Scheduler] / [Timeline] / [Trial] ...
    ---------------------------------------
    """

    def __init__(
        self,
        log_dir: Optional[str] = None,
        rotation: str = "1 day",
        retention: str = "30 days",
        log_level: str = "INFO",
    ):
        self.reconfigure(log_dir, rotation, retention, log_level)

    def reconfigure(
        self,
        log_dir: Optional[str] = None,
        rotation: str = "1 day",
        retention: str = "30 days",
        log_level: str = "INFO",
    ) -> None:
        """
        重建全部 sink；已导入的 logs 引用继续有效
        """
        self.log_dir = log_dir
        self.rotation = rotation
        self.retention = retention
        self.level = log_level

        logger.remove()
        logger.add(sys.stderr, level=self.level, format=CONSOLE_FORMAT, backtrace=False, diagnose=False)

        if self.log_dir:
            os.makedirs(self.log_dir, exist_ok=True)
            logger.add(
                sink=os.path.join(self.log_dir, "{time:YYYY-MM-DD}.log"),
                rotation=self.rotation,
                retention=self.retention,
                level=self.level,
                format=FILE_FORMAT,
                enqueue=True,  # runner 可能在输入线程里打日志
                backtrace=True,
                diagnose=True,
            )

    # ----------- 日志方法（depth=1：记录调用方位置） -----------
    def debug(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        logger.opt(depth=1).error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        logger.opt(depth=1, exception=True).error(msg, *args, **kwargs)

    # ---------- 入口装饰器 ----------
    def catch(self, msg: str = "Exception occurred", log_time: bool = True) -> Callable:
        """
        CLI 入口使用：异常记录完整 traceback 后继续抛出；可选记录耗时。
        """

        def decorator(func: Callable):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start = perf_counter()
                try:
                    result = func(*args, **kwargs)
                except Exception:
                    logger.exception(f"[ERROR] {func.__name__}: {msg}")
                    raise

                if log_time:
                    logger.info(f"[TIME] {func.__name__} took {perf_counter() - start:.4f}s")
                return result

            return wrapper

        return decorator


def init_logging(cfg) -> Logging:
    """
    按 LogConfig 重新配置全局 logs（不替换单例）
    """
    logs.reconfigure(
        log_dir=cfg.dir,
        rotation=cfg.rotation,
        retention=cfg.retention,
        log_level=cfg.level,
    )
    return logs


# 默认全局 logs（可被 init_logging 重新配置）
logs = Logging()
