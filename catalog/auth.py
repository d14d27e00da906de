"""
文件目的: 用户认证（注册 / 登录 / 会话）与 FastAPI 鉴权依赖

功能描述:
    - 凭据存在 auth:<email>，密码用 PBKDF2-SHA256 加盐哈希
    - 登录成功生成随机令牌，会话存在 session:<token>，带过期时间
    - 用户资料（角色、封禁状态）存在 user:<id>
    - current_user / require_active / require_admin 作为路由依赖使用，
      令牌从 Authorization: Bearer <token> 读取
"""

import hashlib
import hmac
import logging
import secrets
import time
import uuid

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import constants
from catalog.errors import BadRequest, Forbidden, Unauthorized
from catalog.kv_store import get_db_file, kv_delete, kv_get, kv_set
from catalog.util import now_iso

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 120_000

# auto_error=False：缺少令牌时由我们自己抛 401（纯文本响应）
security = HTTPBearer(auto_error=False)


# ==================== 密码哈希 ====================

def hash_password(password: str, salt: str | None = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        _, iterations, salt, expected = stored.split("$")
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations))
    except (ValueError, AttributeError):
        return False
    return hmac.compare_digest(digest.hex(), expected)


def _validate_credentials(email: str, password: str) -> tuple[bool, str]:
    if not email or "@" not in email:
        return False, "Valid email is required"
    if not password or len(password) < constants.PASSWORD_MIN_LENGTH:
        return False, f"Password must be at least {constants.PASSWORD_MIN_LENGTH} characters"
    return True, "OK"


# ==================== 账户 ====================

def create_user(email: str, password: str, name: str, DB_FILE, role: str = "user") -> dict:
    """
    新建账户并写入用户资料

    返回值:
        dict: 用户资料 {id, email, name, role, status, createdAt}

    异常:
        BadRequest: 邮箱/密码不合法，或邮箱已注册
    """
    email = (email or "").strip().lower()
    ok, msg = _validate_credentials(email, password)
    if not ok:
        raise BadRequest(msg)
    if kv_get(f"{constants.CREDENTIAL_PREFIX}{email}", DB_FILE):
        raise BadRequest("User already registered")

    user_id = str(uuid.uuid4())
    profile = {
        "id": user_id,
        "email": email,
        "name": (name or "").strip() or email.split("@")[0],
        "role": role,
        "status": "active",
        "createdAt": now_iso(),
    }
    kv_set(
        f"{constants.CREDENTIAL_PREFIX}{email}",
        {"userId": user_id, "email": email, "passwordHash": hash_password(password)},
        DB_FILE,
    )
    kv_set(f"{constants.USER_PREFIX}{user_id}", profile, DB_FILE)
    logger.info("user created: %s (%s)", email, role)
    return profile


def sign_up(email: str, password: str, name: str, DB_FILE) -> dict:
    return create_user(email, password, name, DB_FILE, role="user")


def check_credentials(email: str, password: str, DB_FILE) -> dict | None:
    """邮箱+密码正确时返回凭据记录，否则 None"""
    email = (email or "").strip().lower()
    credential = kv_get(f"{constants.CREDENTIAL_PREFIX}{email}", DB_FILE)
    if not credential or not verify_password(password or "", credential.get("passwordHash", "")):
        return None
    return credential


def sign_in(email: str, password: str, DB_FILE) -> dict:
    """校验凭据并创建会话，返回 {accessToken, expiresAt, user}。"""
    email = (email or "").strip().lower()
    credential = check_credentials(email, password, DB_FILE)
    if not credential:
        raise Unauthorized("Invalid login credentials")

    token = secrets.token_urlsafe(32)
    expires_at = time.time() + constants.SESSION_TTL_HOURS * 3600
    kv_set(
        f"{constants.SESSION_PREFIX}{token}",
        {"userId": credential["userId"], "email": email, "expiresAt": expires_at},
        DB_FILE,
    )
    profile = get_profile(credential["userId"], DB_FILE) or {"id": credential["userId"], "email": email, "role": "user"}
    return {"accessToken": token, "expiresAt": expires_at, "user": profile}


def sign_out(token: str, DB_FILE) -> None:
    if token:
        kv_delete(f"{constants.SESSION_PREFIX}{token}", DB_FILE)


def get_session_user(token: str | None, DB_FILE) -> dict | None:
    """令牌对应的 {id, email}；令牌不存在或已过期返回 None（过期会话顺手删除）。"""
    if not token:
        return None
    session = kv_get(f"{constants.SESSION_PREFIX}{token}", DB_FILE)
    if not session:
        return None
    if session.get("expiresAt", 0) < time.time():
        kv_delete(f"{constants.SESSION_PREFIX}{token}", DB_FILE)
        return None
    return {"id": session["userId"], "email": session.get("email", "")}


def get_profile(user_id: str, DB_FILE) -> dict | None:
    return kv_get(f"{constants.USER_PREFIX}{user_id}", DB_FILE)


def profile_by_email(email: str, DB_FILE) -> dict | None:
    credential = kv_get(f"{constants.CREDENTIAL_PREFIX}{(email or '').strip().lower()}", DB_FILE)
    return get_profile(credential["userId"], DB_FILE) if credential else None


def profile_or_default(user: dict, DB_FILE) -> dict:
    """没有资料记录的账户按普通用户处理"""
    return get_profile(user["id"], DB_FILE) or {
        "id": user["id"],
        "email": user.get("email", ""),
        "role": "user",
        "status": "active",
    }


# ==================== FastAPI 依赖 ====================

def bearer_token(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str | None:
    return credentials.credentials if credentials else None


def current_user(token: str | None = Depends(bearer_token), DB_FILE: str = Depends(get_db_file)) -> dict:
    user = get_session_user(token, DB_FILE)
    if not user:
        raise Unauthorized("Unauthorized")
    return user


def require_active(user: dict = Depends(current_user), DB_FILE: str = Depends(get_db_file)) -> dict:
    """登录且未被封禁；返回用户资料。"""
    profile = profile_or_default(user, DB_FILE)
    if profile.get("status") == "banned":
        raise Forbidden("User is banned")
    return profile


def require_admin(user: dict = Depends(current_user), DB_FILE: str = Depends(get_db_file)) -> dict:
    profile = get_profile(user["id"], DB_FILE)
    if not profile or profile.get("role") != "admin":
        raise Forbidden("Admin access required")
    return profile
