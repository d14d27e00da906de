"""
文件目的: 设备记录的增删改查与审核

功能描述:
    - 每条记录存在 phone:<id>，status 字段是唯一的状态来源；
      “已通过 / 待审核”列表都是对 phone: 前缀扫描后按 status 现算的
    - 只存 specs.sections；display / battery 等便捷分组在读取时由 build_specs 现算
    - 审核只能从 pending 出发一次（approve 或 reject）
"""

import copy
import logging
import uuid
from typing import Any

from catalog.admin_settings import (
    build_effective_sections,
    card_fields_of,
    card_sections,
    form_sections,
    load_effective_settings,
)
from catalog.build_specs import build_specs
from catalog.errors import BadRequest, Conflict, NotFound
from catalog.kv_store import kv_delete, kv_get, kv_get_by_prefix, kv_set, kv_update
from catalog.phone_slug import build_phone_slug
from catalog.spec_config import to_bool
from catalog.util import iso_sort_key, now_iso
from constants import COMMENTS_PREFIX, DEFAULT_CATEGORIES, PHONE_PREFIX, RATERS_PREFIX, RATINGS_PREFIX

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("brand", "title", "shortDesc", "tagline", "price", "category", "images")
REVIEW_ACTIONS = {"approve": "approved", "reject": "rejected"}


def normalize_category(value) -> str:
    return str(value or DEFAULT_CATEGORIES[0]).strip().lower()


def _newest_first(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(records, key=lambda r: iso_sort_key(r.get("submittedAt")), reverse=True)


def _sections_for(phone: dict[str, Any], settings: dict[str, Any]) -> list[dict[str, Any]]:
    """记录所属类别的表单区块；类别下一个区块都没有时退回全部生效区块。"""
    sections = form_sections(settings, phone.get("category") or DEFAULT_CATEGORIES[0])
    return sections or build_effective_sections(settings)


def normalize_sections(section_values: Any, sections: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """
    规范化 specs.sections

    - 生效区块的每个字段都有值（文本 ""，布尔 False）
    - 布尔字段做宽松解析（Var/Yok、true/false ...），文本字段转成去空白的字符串
    - 不认识的区块原样保留
    """
    values = section_values if isinstance(section_values, dict) else {}
    canonical = build_specs(values, sections)["sections"]
    for section in sections:
        bucket = canonical[section["id"]]
        for field in section.get("fields") or []:
            raw = bucket.get(field["key"])
            if field.get("type") == "boolean":
                bucket[field["key"]] = to_bool(raw)
            elif not isinstance(raw, str):
                bucket[field["key"]] = "" if raw is None or raw is False else str(raw)
            else:
                bucket[field["key"]] = raw.strip()
    return canonical


def with_specs_view(phone: dict[str, Any], settings: dict[str, Any]) -> dict[str, Any]:
    """返回带便捷分组的副本（不回写存储）"""
    view = copy.deepcopy(phone)
    stored = (phone.get("specs") or {}).get("sections") or {}
    view["specs"] = build_specs(stored, _sections_for(phone, settings))
    view["slug"] = build_phone_slug(phone.get("brand"), phone.get("title"))
    return view


# ==================== 读取 ====================

def _all_phones(DB_FILE) -> list[dict[str, Any]]:
    return [p for p in kv_get_by_prefix(PHONE_PREFIX, DB_FILE) if isinstance(p, dict)]


def _by_status(status: str, DB_FILE) -> list[dict[str, Any]]:
    return _newest_first([p for p in _all_phones(DB_FILE) if p.get("status") == status])


def list_approved(DB_FILE) -> list[dict[str, Any]]:
    settings = load_effective_settings(DB_FILE)
    return [with_specs_view(p, settings) for p in _by_status("approved", DB_FILE)]


def list_pending(DB_FILE) -> list[dict[str, Any]]:
    settings = load_effective_settings(DB_FILE)
    return [with_specs_view(p, settings) for p in _by_status("pending", DB_FILE)]


def list_all(DB_FILE) -> list[dict[str, Any]]:
    settings = load_effective_settings(DB_FILE)
    return [with_specs_view(p, settings) for p in _newest_first(_all_phones(DB_FILE))]


def latest(category: str | None, limit: int, DB_FILE) -> list[dict[str, Any]]:
    """某类别下最新通过的 limit 条"""
    settings = load_effective_settings(DB_FILE)
    wanted = normalize_category(category)
    phones = [p for p in _by_status("approved", DB_FILE) if normalize_category(p.get("category")) == wanted]
    return [with_specs_view(p, settings) for p in phones[: max(limit, 0)]]


def summary(DB_FILE) -> list[dict[str, Any]]:
    """
    浏览页用的轻量列表

    每条只带基础信息，外加两组取值（键均为 "sectionId:fieldKey"）：
        filters: 配置的筛选字段，空值不带
        cards: 记录所属类别的卡片区块 × 卡片字段，空值也带上（卡片上显示占位）
    """
    settings = load_effective_settings(DB_FILE)
    filter_fields = settings.get("filterFields") or []
    result = []
    for phone in _by_status("approved", DB_FILE):
        sections = (phone.get("specs") or {}).get("sections") or {}
        filters = {}
        for field in filter_fields:
            value = (sections.get(field["sectionId"]) or {}).get(field["fieldKey"])
            if value is not None and value != "":
                filters[f"{field['sectionId']}:{field['fieldKey']}"] = value
        cards = {}
        for section in card_sections(settings, phone.get("category") or DEFAULT_CATEGORIES[0]):
            for field in card_fields_of(section, settings):
                cards[f"{section['id']}:{field['key']}"] = (sections.get(section["id"]) or {}).get(field["key"])
        result.append({
            "id": phone["id"],
            "brand": phone.get("brand", ""),
            "title": phone.get("title", ""),
            "images": phone.get("images") or [],
            "category": phone.get("category", ""),
            "price": phone.get("price", ""),
            "submittedAt": phone.get("submittedAt", ""),
            "slug": build_phone_slug(phone.get("brand"), phone.get("title")),
            "filters": filters,
            "cards": cards,
        })
    return result


def get_phone(phone_id: str, DB_FILE, raw: bool = False) -> dict[str, Any]:
    phone = kv_get(f"{PHONE_PREFIX}{phone_id}", DB_FILE)
    if not phone:
        raise NotFound("Phone not found")
    return phone if raw else with_specs_view(phone, load_effective_settings(DB_FILE))


def get_by_slug(slug: str, DB_FILE) -> dict[str, Any]:
    for phone in _by_status("approved", DB_FILE):
        if build_phone_slug(phone.get("brand"), phone.get("title")) == slug:
            return with_specs_view(phone, load_effective_settings(DB_FILE))
    raise NotFound("Phone not found")


# ==================== 写入 ====================

def _validate_phone(payload: dict[str, Any]) -> tuple[bool, str]:
    if not str(payload.get("brand") or "").strip():
        return False, "brand is required"
    if not str(payload.get("title") or "").strip():
        return False, "title is required"
    images = payload.get("images")
    if images is not None and not isinstance(images, list):
        return False, "images must be a list"
    return True, "OK"


def _clean_images(images) -> list[dict[str, str]]:
    out = []
    for image in images or []:
        if isinstance(image, str) and image.strip():
            out.append({"src": image.strip(), "alt": "", "color": ""})
        elif isinstance(image, dict) and str(image.get("src") or "").strip():
            out.append({
                "src": str(image["src"]).strip(),
                "alt": str(image.get("alt") or ""),
                "color": str(image.get("color") or ""),
            })
    return out


def _editable(payload: dict[str, Any]) -> dict[str, Any]:
    out = {}
    for key in EDITABLE_FIELDS:
        if key not in payload:
            continue
        value = payload[key]
        if key == "images":
            out[key] = _clean_images(value)
        else:
            out[key] = "" if value is None else str(value).strip()
    return out


def _section_values_of(payload: dict[str, Any]) -> dict[str, Any] | None:
    """
    取出 payload 里的 specs.sections

    没给 specs 或 sections 时返回 None；给了但不是 {sectionId: {fieldKey: value}} 结构时报 400
    """
    specs = payload.get("specs")
    if specs is None:
        return None
    if not isinstance(specs, dict):
        raise BadRequest("specs must be an object")
    section_values = specs.get("sections")
    if section_values is None:
        return None
    if not isinstance(section_values, dict):
        raise BadRequest("specs.sections must be an object")
    for section_id, values in section_values.items():
        if not isinstance(values, dict):
            raise BadRequest(f"specs.sections.{section_id} must be an object")
    return section_values


def create_phone(payload: dict[str, Any], user: dict[str, Any], profile: dict[str, Any] | None, DB_FILE) -> dict[str, Any]:
    """
    提交一条设备记录

    输入参数:
        payload: brand / title / price / category / images / specs.sections / autoApprove ...
        user: 当前登录用户 {id, email}
        profile: 当前用户资料（决定是否管理员）

    返回值:
        dict: 已保存的记录（带便捷分组）

    状态规则:
        管理员且 autoApprove=True 时直接 approved（同时写 reviewedBy/reviewedAt），
        其他情况一律 pending
    """
    ok, msg = _validate_phone(payload)
    if not ok:
        raise BadRequest(msg)

    settings = load_effective_settings(DB_FILE)
    is_admin = bool(profile and profile.get("role") == "admin")
    status = "approved" if is_admin and payload.get("autoApprove") else "pending"
    now = now_iso()

    phone = {
        "id": str(uuid.uuid4()),
        "brand": "",
        "title": "",
        "shortDesc": "",
        "tagline": "",
        "price": "",
        "category": DEFAULT_CATEGORIES[0],
        "images": [],
    }
    phone.update(_editable(payload))
    phone["category"] = phone["category"] or DEFAULT_CATEGORIES[0]
    section_values = _section_values_of(payload)
    phone["specs"] = {"sections": normalize_sections(section_values, _sections_for(phone, settings))}
    phone["status"] = status
    phone["submittedBy"] = user["id"]
    phone["submittedAt"] = now
    if status == "approved":
        phone["reviewedBy"] = user["id"]
        phone["reviewedAt"] = now

    kv_set(f"{PHONE_PREFIX}{phone['id']}", phone, DB_FILE)
    logger.info("phone submitted: %s %s (%s) by %s", phone["brand"], phone["title"], status, user["id"])
    return with_specs_view(phone, settings)


def review_phone(phone_id: str, action: str, admin: dict[str, Any], DB_FILE) -> dict[str, Any]:
    """approve / reject 一条待审核记录；已审核过的返回 409。"""
    if action not in REVIEW_ACTIONS:
        raise BadRequest("action must be approve or reject")

    def _apply(current):
        if not current:
            raise NotFound("Phone not found")
        if current.get("status") != "pending":
            raise Conflict(f"Phone already {current.get('status')}")
        current["status"] = REVIEW_ACTIONS[action]
        current["reviewedBy"] = admin["id"]
        current["reviewedAt"] = now_iso()
        return current

    phone = kv_update(f"{PHONE_PREFIX}{phone_id}", _apply, DB_FILE)
    logger.info("phone %s %s by %s", phone_id, phone["status"], admin["id"])
    return with_specs_view(phone, load_effective_settings(DB_FILE))


def update_phone(phone_id: str, updates: dict[str, Any], DB_FILE) -> dict[str, Any]:
    """
    管理员编辑记录内容

    id / status / 提交与审核信息保持不变；给了 specs.sections 时整体替换并重新规范化
    """
    settings = load_effective_settings(DB_FILE)

    def _apply(current):
        if not current:
            raise NotFound("Phone not found")
        merged = dict(current)
        merged.update(_editable(updates))
        if not merged.get("brand") or not merged.get("title"):
            raise BadRequest("brand and title cannot be empty")
        merged["category"] = merged.get("category") or DEFAULT_CATEGORIES[0]
        section_values = _section_values_of(updates)
        if section_values is None:
            section_values = (current.get("specs") or {}).get("sections")
        merged["specs"] = {"sections": normalize_sections(section_values, _sections_for(merged, settings))}
        return merged

    phone = kv_update(f"{PHONE_PREFIX}{phone_id}", _apply, DB_FILE)
    logger.info("phone updated: %s", phone_id)
    return with_specs_view(phone, settings)


def delete_phone(phone_id: str, DB_FILE) -> None:
    """硬删除；评论和评分一起删掉。"""
    if not kv_get(f"{PHONE_PREFIX}{phone_id}", DB_FILE):
        raise NotFound("Phone not found")
    kv_delete(f"{PHONE_PREFIX}{phone_id}", DB_FILE)
    kv_delete(f"{COMMENTS_PREFIX}{phone_id}", DB_FILE)
    kv_delete(f"{RATINGS_PREFIX}{phone_id}", DB_FILE)
    kv_delete(f"{RATERS_PREFIX}{phone_id}", DB_FILE)
    logger.info("phone deleted: %s", phone_id)
