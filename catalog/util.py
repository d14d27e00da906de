import os
import sys
from datetime import datetime, timezone

from dotenv import load_dotenv

# 加载 .env（存在才加载，不覆盖已设置的环境变量）
load_dotenv()


def get_path_for_read(relative_path):
    """
    【读资源专用】
    获取资源文件的目录（兼容开发环境和打包后的临时目录）
    用来读：种子数据 JSON 等
    """
    if hasattr(sys, "_MEIPASS"):
        return os.path.join(sys._MEIPASS, relative_path)
    return os.path.join(os.path.abspath("."), relative_path)


def get_path_for_write(relative_path):
    """
    【写数据专用】
    获取可写目录（数据库等）。绝对路径原样返回，便于测试指向临时目录。
    """
    if os.path.isabs(relative_path):
        return relative_path
    if getattr(sys, "frozen", False):
        return os.path.join(os.path.dirname(sys.executable), relative_path)
    return os.path.join(os.path.abspath("."), relative_path)


def env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_int(name: str, default: int) -> int:
    try:
        return int(env_str(name, str(default)))
    except ValueError:
        return default


def now_iso() -> str:
    """UTC ISO 时间戳（与前端 new Date().toISOString() 格式一致）"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_sort_key(value) -> float:
    """把 ISO 时间字符串转成可排序的时间戳；无法解析时按 0 处理（排最后）。"""
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0
