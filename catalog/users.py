import logging
from typing import Any

from catalog.errors import BadRequest, NotFound
from catalog.kv_store import kv_delete, kv_get, kv_get_by_prefix, kv_set, kv_update
from catalog.util import iso_sort_key, now_iso
from constants import CREDENTIAL_PREFIX, USER_PREFIX

logger = logging.getLogger(__name__)

ROLES = ("admin", "user")
STATUSES = ("active", "banned")


def list_users(DB_FILE) -> list[dict[str, Any]]:
    users = [u for u in kv_get_by_prefix(USER_PREFIX, DB_FILE) if isinstance(u, dict)]
    return sorted(users, key=lambda u: iso_sort_key(u.get("createdAt")), reverse=True)


def _get_user(user_id: str, DB_FILE) -> dict[str, Any]:
    user = kv_get(f"{USER_PREFIX}{user_id}", DB_FILE)
    if not user:
        raise NotFound("User not found")
    return user


def _move_credentials(old_email: str, new_email: str, DB_FILE) -> None:
    """登录凭据按邮箱存，改邮箱时要把凭据挪到新键下"""
    if kv_get(f"{CREDENTIAL_PREFIX}{new_email}", DB_FILE):
        raise BadRequest("Email already registered")
    credential = kv_get(f"{CREDENTIAL_PREFIX}{old_email}", DB_FILE)
    if credential:
        credential["email"] = new_email
        kv_set(f"{CREDENTIAL_PREFIX}{new_email}", credential, DB_FILE)
        kv_delete(f"{CREDENTIAL_PREFIX}{old_email}", DB_FILE)


def update_user(user_id: str, payload: dict[str, Any], DB_FILE) -> dict[str, Any]:
    """
    管理员修改用户资料

    只处理 name / email / role / status 四项；role、status 不在允许值里时忽略
    """
    existing = _get_user(user_id, DB_FILE)
    updates: dict[str, Any] = {}

    if isinstance(payload.get("name"), str):
        updates["name"] = payload["name"].strip()
    if isinstance(payload.get("email"), str):
        email = payload["email"].strip().lower()
        if "@" not in email:
            raise BadRequest("Invalid email")
        if email != existing.get("email"):
            _move_credentials(existing.get("email", ""), email, DB_FILE)
            updates["email"] = email
    if payload.get("role") in ROLES:
        updates["role"] = payload["role"]
    if payload.get("status") in STATUSES:
        updates["status"] = payload["status"]

    def _apply(current):
        if not current:
            raise NotFound("User not found")
        return {**current, **updates, "updatedAt": now_iso()}

    updated = kv_update(f"{USER_PREFIX}{user_id}", _apply, DB_FILE)
    logger.info("user updated: %s %s", user_id, sorted(updates))
    return updated


def set_ban(user_id: str, action: str, admin: dict[str, Any], DB_FILE) -> dict[str, Any]:
    """action 为 'unban' 时解封，其他值一律按封禁处理"""
    banning = action != "unban"

    def _apply(current):
        if not current:
            raise NotFound("User not found")
        now = now_iso()
        return {
            **current,
            "status": "banned" if banning else "active",
            "bannedAt": now if banning else None,
            "bannedBy": admin["id"] if banning else None,
            "updatedAt": now,
        }

    updated = kv_update(f"{USER_PREFIX}{user_id}", _apply, DB_FILE)
    logger.info("user %s %s by %s", user_id, "banned" if banning else "unbanned", admin["id"])
    return updated
