"""项目路径工具"""

from functools import lru_cache
from pathlib import Path


@lru_cache
def get_project_root() -> Path:
    """获取项目根目录（backend 目录）"""
    return Path(__file__).resolve().parents[2]
