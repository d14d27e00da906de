import json
import logging
import sqlite3
from typing import Any, Callable

import constants
from catalog.util import get_path_for_write

logger = logging.getLogger(__name__)


def _get_db_connection(DB_FILE) -> sqlite3.Connection:
    """创建 SQLite 连接，并启用 Row 工厂便于按列名取值。"""
    # isolation_level=None：自己控制事务（kv_update 需要 BEGIN IMMEDIATE）
    conn = sqlite3.connect(DB_FILE, isolation_level=None, timeout=10)
    conn.row_factory = sqlite3.Row
    return conn


def _ensure_db_schema(DB_FILE) -> None:
    """确保 kv_store 表存在；即便没运行 init_db.py 也能启动应用。"""
    conn = _get_db_connection(DB_FILE)
    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
    finally:
        conn.close()


def _loads(raw):
    if raw is None:
        return None
    return json.loads(raw)


def _dumps(value) -> str:
    return json.dumps(value, ensure_ascii=False)


# ==================== 键值存储门面 ====================

def kv_get(key: str, DB_FILE) -> Any:
    _ensure_db_schema(DB_FILE)
    conn = _get_db_connection(DB_FILE)
    try:
        row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
    finally:
        conn.close()
    return _loads(row["value"]) if row else None


def kv_set(key: str, value: Any, DB_FILE) -> None:
    _ensure_db_schema(DB_FILE)
    conn = _get_db_connection(DB_FILE)
    try:
        conn.execute(
            """
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, _dumps(value)),
        )
    finally:
        conn.close()


def kv_mget(keys: list[str], DB_FILE) -> list[Any]:
    """批量读取；返回顺序与 keys 一致，不存在的键返回 None。"""
    if not keys:
        return []
    _ensure_db_schema(DB_FILE)
    placeholders = ",".join("?" for _ in keys)
    conn = _get_db_connection(DB_FILE)
    try:
        rows = conn.execute(
            f"SELECT key, value FROM kv_store WHERE key IN ({placeholders})",
            list(keys),
        ).fetchall()
    finally:
        conn.close()
    by_key = {row["key"]: _loads(row["value"]) for row in rows}
    return [by_key.get(k) for k in keys]


def kv_delete(key: str, DB_FILE) -> None:
    _ensure_db_schema(DB_FILE)
    conn = _get_db_connection(DB_FILE)
    try:
        conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
    finally:
        conn.close()


def kv_get_by_prefix(prefix: str, DB_FILE) -> list[Any]:
    """前缀扫描，按 key 升序返回 value 列表。"""
    _ensure_db_schema(DB_FILE)
    # LIKE 需要转义 % 和 _
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    conn = _get_db_connection(DB_FILE)
    try:
        rows = conn.execute(
            "SELECT value FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY key ASC",
            (escaped + "%",),
        ).fetchall()
    finally:
        conn.close()
    return [_loads(row["value"]) for row in rows]


def kv_update(key: str, fn: Callable[[Any], Any], DB_FILE, default: Any = None) -> Any:
    """
    原子的 读-改-写

    功能说明:
        在同一个 BEGIN IMMEDIATE 事务内读取旧值、调用 fn 计算新值并写回，
        并发写者会在 SQLite 写锁上排队，不会互相覆盖（评论/评分列表、站点设置）。

    输入参数:
        key: 键
        fn: 接收旧值（不存在时为 default）并返回新值的函数；
            fn 抛出的异常会回滚事务并原样向上抛出
        default: 键不存在时传给 fn 的值

    返回值:
        写入后的新值
    """
    _ensure_db_schema(DB_FILE)
    conn = _get_db_connection(DB_FILE)
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            current = _loads(row["value"]) if row else default
            new_value = fn(current)
            conn.execute(
                """
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, _dumps(new_value)),
            )
        except Exception:
            conn.execute("ROLLBACK")
            logger.debug("kv_update rolled back: %s", key)
            raise
        conn.execute("COMMIT")
        return new_value
    finally:
        conn.close()


def get_db_file() -> str:
    """当前数据库文件路径（FastAPI 依赖；测试里改 constants.DB_FILE 即可指向临时库）"""
    return get_path_for_write(constants.DB_FILE)
