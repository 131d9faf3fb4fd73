#!filepath: trialflow/utils/filesystem.py
from pathlib import Path
from typing import Callable

from trialflow import logs


class FileSystem:
    """
    导出用文件工具：所有写入都走 tmp → rename，
    中途失败（磁盘满、被试机断电）不会留下半截数据文件
    """

    @staticmethod
    def ensure_dir(path: str | Path) -> Path:
        p = Path(path)
        if not p.exists():
            p.mkdir(parents=True, exist_ok=True)
            logs.debug(f"[FS] created {p}")
        return p

    @staticmethod
    def tmp_path_for(path: str | Path) -> Path:
        p = Path(path)
        return p.with_name(p.name + ".tmp")

    @staticmethod
    def atomic_write(path: str | Path, write: Callable[[Path], None]) -> Path:
        """
        write(tmp_path) 写完整个文件后再 rename 成 path；
        write 抛异常时删除 tmp，path 保持原样
        """
        path = Path(path)
        FileSystem.ensure_dir(path.parent)
        tmp = FileSystem.tmp_path_for(path)

        try:
            write(tmp)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise

        tmp.replace(path)
        logs.debug(f"[FS] committed {path}")
        return path

    @staticmethod
    def write_bytes(path: str | Path, data: bytes) -> Path:
        return FileSystem.atomic_write(path, lambda tmp: tmp.write_bytes(data))
