"""
Request Schemas

JSON 接口的请求体模型（pydantic）。
字段名沿用前端使用的 camelCase；业务层的校验（必填、长度、取值范围）
在 catalog/ 各模块里做，这里只负责结构。
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

# -----------------------------
# 账户
# -----------------------------

class SignUp(BaseModel):
    email: str
    password: str
    name: str = ""


class SignIn(BaseModel):
    email: str
    password: str


# -----------------------------
# 设备记录
# -----------------------------

class PhonePayload(BaseModel):
    """
    新建设备记录
    specs 只取 specs.sections；autoApprove 仅对管理员生效
    """
    brand: str = ""
    title: str = ""
    shortDesc: str = ""
    tagline: str = ""
    price: Any = ""
    category: str = ""
    images: List[Any] = Field(default_factory=list)
    specs: dict = Field(default_factory=dict)
    autoApprove: bool = False


class PhoneUpdate(BaseModel):
    """管理员编辑；只有显式提交的字段会被修改"""
    brand: Optional[str] = None
    title: Optional[str] = None
    shortDesc: Optional[str] = None
    tagline: Optional[str] = None
    price: Any = None
    category: Optional[str] = None
    images: Optional[List[Any]] = None
    specs: Optional[dict] = None


class ImportRequest(BaseModel):
    entries: List[Any] = Field(default_factory=list)


# -----------------------------
# 评论 / 评分
# -----------------------------

class CommentIn(BaseModel):
    message: Optional[str] = None


class RatingIn(BaseModel):
    score: Any = None


# -----------------------------
# 用户管理
# -----------------------------

class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None


class BanAction(BaseModel):
    action: str = Field("ban", description="ban | unban")


# -----------------------------
# 站点设置
# -----------------------------

class SettingsPut(BaseModel):
    """version 是读取时拿到的版本号，缺省时返回 428"""
    version: Optional[int] = None
    settings: Any = None
