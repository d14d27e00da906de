"""
文件目的: 评论与评分

存储:
    comments:<phoneId> -> [comment, ...]  新的在前，最多 COMMENTS_CAP 条
    ratings:<phoneId>  -> [rating, ...]   新的在前，最多 RATINGS_CAP 条，每个用户只能评一次
    raters:<phoneId>   -> [userId, ...]  评过分的用户，不截断

列表的追加都走 kv_update，避免并发写互相覆盖。
"""

import logging
import math
import uuid
from typing import Any

from catalog.errors import BadRequest, Conflict, NotFound
from catalog.kv_store import kv_get, kv_update
from catalog.util import now_iso
from constants import (
    COMMENT_MAX_LENGTH,
    COMMENTS_CAP,
    COMMENTS_PREFIX,
    PHONE_PREFIX,
    RATERS_PREFIX,
    RATINGS_CAP,
    RATINGS_PREFIX,
    SCORE_MAX,
    SCORE_MIN,
)

logger = logging.getLogger(__name__)


def _ensure_phone(phone_id: str, DB_FILE) -> None:
    if not kv_get(f"{PHONE_PREFIX}{phone_id}", DB_FILE):
        raise NotFound("Phone not found")


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


# ==================== 评论 ====================

def list_comments(phone_id: str, DB_FILE) -> list[dict[str, Any]]:
    return _as_list(kv_get(f"{COMMENTS_PREFIX}{phone_id}", DB_FILE))


def _validate_message(message: str) -> tuple[bool, str]:
    if not message:
        return False, "Message required"
    if len(message) > COMMENT_MAX_LENGTH:
        return False, "Message too long"
    return True, "OK"


def add_comment(phone_id: str, message: Any, profile: dict[str, Any], DB_FILE) -> dict[str, Any]:
    """
    发表评论

    输入参数:
        message: 评论内容（去掉首尾空白后 1~500 字）
        profile: 评论者资料（显示名取 name，没有则用 email）
    """
    text = str(message or "").strip()
    ok, msg = _validate_message(text)
    if not ok:
        raise BadRequest(msg)
    _ensure_phone(phone_id, DB_FILE)

    entry = {
        "id": str(uuid.uuid4()),
        "userId": profile["id"],
        "name": profile.get("name") or profile.get("email") or "",
        "message": text,
        "createdAt": now_iso(),
    }
    kv_update(
        f"{COMMENTS_PREFIX}{phone_id}",
        lambda current: [entry] + _as_list(current)[: COMMENTS_CAP - 1],
        DB_FILE,
        default=[],
    )
    logger.info("comment added on %s by %s", phone_id, profile["id"])
    return entry


def delete_comment(phone_id: str, comment_id: str, DB_FILE) -> None:
    def _apply(current):
        comments = _as_list(current)
        remaining = [c for c in comments if c.get("id") != comment_id]
        if len(remaining) == len(comments):
            raise NotFound("Comment not found")
        return remaining

    kv_update(f"{COMMENTS_PREFIX}{phone_id}", _apply, DB_FILE, default=[])
    logger.info("comment %s deleted from %s", comment_id, phone_id)


# ==================== 评分 ====================

def parse_score(value: Any) -> int:
    """转成整数并夹到 [0, 100]（四舍五入）；不是数字则 400"""
    if isinstance(value, bool) or value is None:
        raise BadRequest("Score required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise BadRequest("Score required")
    if not math.isfinite(number):
        raise BadRequest("Score required")
    return int(min(SCORE_MAX, max(SCORE_MIN, math.floor(number + 0.5))))


def aggregate(ratings: list[dict[str, Any]]) -> dict[str, Any]:
    count = len(ratings)
    if count == 0:
        return {"average": 0, "count": 0}
    total = sum(float(r.get("score") or 0) for r in ratings)
    return {"average": round(total / count, 1), "count": count}


def list_ratings(phone_id: str, DB_FILE) -> list[dict[str, Any]]:
    return _as_list(kv_get(f"{RATINGS_PREFIX}{phone_id}", DB_FILE))


def get_rating_summary(phone_id: str, DB_FILE) -> dict[str, Any]:
    return aggregate(list_ratings(phone_id, DB_FILE))


def get_my_rating(phone_id: str, user_id: str, DB_FILE) -> dict[str, Any]:
    for entry in list_ratings(phone_id, DB_FILE):
        if entry.get("userId") == user_id:
            return {"score": entry.get("score")}
    return {"score": None}


def add_rating(phone_id: str, score: Any, user_id: str, DB_FILE) -> dict[str, Any]:
    """
    评分（每个用户每台设备只能一次）

    功能说明:
        先在 raters:<phoneId> 里登记用户，再把评分追加到列表。
        评分列表有上限会丢掉旧记录，登记表不截断，所以被挤出列表的用户也不能再评

    返回值:
        dict: {average, count, score}

    异常:
        BadRequest: score 不是数字
        Conflict: 已经评过分
    """
    value = parse_score(score)
    _ensure_phone(phone_id, DB_FILE)

    def _claim(current):
        raters = _as_list(current)
        if user_id in raters:
            raise Conflict("Already rated")
        return raters + [user_id]

    def _apply(current):
        ratings = _as_list(current)
        if any(r.get("userId") == user_id for r in ratings):
            raise Conflict("Already rated")
        entry = {"userId": user_id, "score": value, "createdAt": now_iso()}
        return ([entry] + ratings)[:RATINGS_CAP]

    kv_update(f"{RATERS_PREFIX}{phone_id}", _claim, DB_FILE, default=[])
    try:
        ratings = kv_update(f"{RATINGS_PREFIX}{phone_id}", _apply, DB_FILE, default=[])
    except Conflict:
        # 列表里已有该用户（登记表缺失的旧数据）：撤回登记
        kv_update(f"{RATERS_PREFIX}{phone_id}", lambda current: [u for u in _as_list(current) if u != user_id], DB_FILE, default=[])
        raise
    logger.info("rating %s on %s by %s", value, phone_id, user_id)
    return {**aggregate(ratings), "score": value}
