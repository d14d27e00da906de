import copy
import logging
from typing import Any

from catalog.errors import BadRequest, Conflict, PreconditionRequired
from catalog.kv_store import kv_get, kv_update
from catalog.spec_config import (
    BUILTIN_SECTION_IDS,
    SECTION_CONFIG,
    label_to_key,
    normalize_field,
)
from constants import DEFAULT_CATEGORIES, SETTINGS_KEY

logger = logging.getLogger(__name__)

FILTER_TYPES = ("text", "range", "boolean")

LIST_KEYS = ("categories", "formSectionIds", "cardSectionIds")
MAP_KEYS = ("cardFields", "sectionCategories", "categorySectionTemplates", "hiddenFields")


def default_settings() -> dict[str, Any]:
    """内置默认值：一个默认类别，所有内置区块都在表单和卡片里，覆盖层全部为空。"""
    return {
        "categories": list(DEFAULT_CATEGORIES),
        "formSectionIds": list(BUILTIN_SECTION_IDS),
        "cardSectionIds": list(BUILTIN_SECTION_IDS),
        "cardFields": {},
        "sectionCategories": {},
        "categorySectionTemplates": {},
        "hiddenFields": {},
        "extraFields": {},
        "customSections": [],
        "filterFields": [],
    }


# ==================== 规范化 ====================

def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    out: list[str] = []
    for item in value:
        text = str(item).strip() if item is not None else ""
        if text and text not in out:
            out.append(text)
    return out


def _str_list_map(value: Any) -> dict[str, list[str]]:
    if not isinstance(value, dict):
        return {}
    return {str(k): _str_list(v) for k, v in value.items()}


def _normalize_fields(value: Any) -> list[dict[str, Any]]:
    fields = []
    for item in value if isinstance(value, list) else []:
        nf = normalize_field(item)
        if nf:
            fields.append(nf)
    return fields


def _normalize_custom_section(section: Any) -> dict[str, Any] | None:
    if not isinstance(section, dict):
        return None
    title = str(section.get("title", "")).strip()
    tab_label = str(section.get("tabLabel", "") or title).strip()
    if not title and not tab_label:
        return None
    section_id = str(section.get("id", "")).strip() or label_to_key(tab_label or title)
    # 兼容旧字段名 categories / iconName / iconHex
    categories = section.get("applicableCategories")
    if categories is None:
        categories = section.get("categories")
    out = {
        "id": section_id,
        "title": title or tab_label,
        "tabLabel": tab_label or title,
        "fields": _normalize_fields(section.get("fields")),
        "applicableCategories": _str_list(categories),
    }
    icon_ref = section.get("iconRef", section.get("iconName"))
    icon_color = section.get("iconColor", section.get("iconHex"))
    if icon_ref:
        out["iconRef"] = str(icon_ref).strip()
    if icon_color:
        out["iconColor"] = str(icon_color).strip()
    return out


def _normalize_filter_field(field: Any) -> dict[str, Any] | None:
    if not isinstance(field, dict):
        return None
    section_id = str(field.get("sectionId", "")).strip()
    field_key = str(field.get("fieldKey", "")).strip()
    if not section_id or not field_key:
        return None
    ftype = str(field.get("type", "text")).strip()
    if ftype == "checkbox":
        ftype = "boolean"
    filter_type = field.get("filterType")
    if filter_type not in FILTER_TYPES:
        filter_type = "boolean" if ftype == "boolean" else "text"
    out = {
        "sectionId": section_id,
        "fieldKey": field_key,
        "label": str(field.get("label", "") or field_key).strip(),
        "type": ftype,
        "filterType": filter_type,
    }
    if isinstance(field.get("numeric"), dict):
        out["numeric"] = dict(field["numeric"])
    return out


def _ensure_section_categories(settings: dict[str, Any]) -> dict[str, list[str]]:
    """每个区块（内置/自定义）至少适用于一个类别，缺省落到第一个类别。"""
    categories = settings.get("categories") or DEFAULT_CATEGORIES
    default_category = categories[0]
    next_map = dict(settings.get("sectionCategories") or {})

    for section_id in BUILTIN_SECTION_IDS:
        if not next_map.get(section_id):
            next_map[section_id] = [default_category]

    for section in settings.get("customSections") or []:
        if not next_map.get(section["id"]):
            next_map[section["id"]] = list(section.get("applicableCategories") or [default_category])

    return next_map


def _ensure_category_templates(settings: dict[str, Any]) -> dict[str, list[str]]:
    """每个类别至少有一个模板条目；默认类别的空模板补成全部内置区块。"""
    categories = settings.get("categories") or DEFAULT_CATEGORIES
    default_category = categories[0]
    next_map = dict(settings.get("categorySectionTemplates") or {})

    if not next_map.get(default_category):
        next_map[default_category] = list(BUILTIN_SECTION_IDS)
    for category in categories:
        next_map.setdefault(category, [])

    return next_map


def merge_settings(incoming: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    合并远程覆盖层与内置默认值，得到生效的设置文档

    规则:
        - 列表类配置（categories / formSectionIds / cardSectionIds）为空时视为“用默认”，不会强制置空
        - 映射类配置缺省为空字典
        - 合并后自动修复：区块适用类别、类别模板
    纯函数、无副作用、幂等：merge_settings(merge_settings(x)) == merge_settings(x)
    """
    safe = incoming if isinstance(incoming, dict) else {}
    defaults = default_settings()
    merged: dict[str, Any] = {}

    for key in LIST_KEYS:
        value = _str_list(safe.get(key))
        merged[key] = value if value else defaults[key]

    for key in MAP_KEYS:
        merged[key] = _str_list_map(safe.get(key))

    extra_raw = safe.get("extraFields")
    merged["extraFields"] = {
        str(k): _normalize_fields(v)
        for k, v in (extra_raw.items() if isinstance(extra_raw, dict) else [])
    }

    custom_sections = []
    seen_ids = set(BUILTIN_SECTION_IDS)
    for item in safe.get("customSections") or []:
        section = _normalize_custom_section(item)
        # 自定义区块不能占用内置 id，也不能重复
        if section and section["id"] not in seen_ids:
            seen_ids.add(section["id"])
            custom_sections.append(section)
    merged["customSections"] = custom_sections

    merged["filterFields"] = [
        ff for ff in (_normalize_filter_field(x) for x in safe.get("filterFields") or []) if ff
    ]

    merged["sectionCategories"] = _ensure_section_categories(merged)
    merged["categorySectionTemplates"] = _ensure_category_templates(merged)
    return merged


def _validate_settings(raw: Any) -> tuple[bool, str]:
    """管理员提交的覆盖层做结构校验（修复交给 merge_settings）。"""
    if not isinstance(raw, dict):
        return False, "settings must be an object"

    for key in LIST_KEYS:
        value = raw.get(key)
        if value is not None and (not isinstance(value, list) or not all(isinstance(v, str) for v in value)):
            return False, f"{key} must be a list of strings"

    for key in MAP_KEYS:
        value = raw.get(key)
        if value is None:
            continue
        if not isinstance(value, dict):
            return False, f"{key} must be an object"
        for k, v in value.items():
            if not isinstance(v, list) or not all(isinstance(s, str) for s in v):
                return False, f"{key}.{k} must be a list of strings"

    extra = raw.get("extraFields")
    if extra is not None:
        if not isinstance(extra, dict):
            return False, "extraFields must be an object"
        for k, v in extra.items():
            if not isinstance(v, list):
                return False, f"extraFields.{k} must be a list"
            for field in v:
                if not normalize_field(field):
                    return False, f"extraFields.{k} contains a field without label"

    for key in ("customSections", "filterFields"):
        value = raw.get(key)
        if value is not None and not isinstance(value, list):
            return False, f"{key} must be a list"

    for section in raw.get("customSections") or []:
        if not _normalize_custom_section(section):
            return False, "customSections entries need a title"

    for field in raw.get("filterFields") or []:
        if not _normalize_filter_field(field):
            return False, "filterFields entries need sectionId and fieldKey"

    return True, "OK"


# ==================== 投影：表单 / 卡片 / 筛选 ====================

def _merge_fields(base, extras=None, hidden=None):
    """先追加 extras，再去掉 hidden；同 key 只保留第一次出现的。"""
    hidden = set(hidden or [])
    seen: set[str] = set()
    out = []
    for field in list(base) + list(extras or []):
        if field["key"] in hidden or field["key"] in seen:
            continue
        seen.add(field["key"])
        out.append(dict(field))
    return out


def build_effective_sections(settings: dict[str, Any]) -> list[dict[str, Any]]:
    hidden = settings.get("hiddenFields") or {}
    extras = settings.get("extraFields") or {}
    section_categories = settings.get("sectionCategories") or {}

    sections = []
    for section in SECTION_CONFIG:
        sections.append({
            "id": section["id"],
            "title": section["title"],
            "tabLabel": section["tabLabel"],
            "fields": _merge_fields(section["fields"], extras.get(section["id"]), hidden.get(section["id"])),
            "applicableCategories": list(section_categories.get(section["id"], [])),
            "builtin": True,
        })

    for section in settings.get("customSections") or []:
        out = copy.deepcopy(section)
        out["fields"] = _merge_fields(section.get("fields") or [], None, hidden.get(section["id"]))
        out["applicableCategories"] = list(
            section_categories.get(section["id"]) or section.get("applicableCategories") or []
        )
        out["builtin"] = False
        sections.append(out)

    return sections


def _filter_by_category(sections, category):
    if not category:
        return sections
    return [s for s in sections if category in (s.get("applicableCategories") or [])]


def _visible_sections(settings, ids_key, category):
    sections = build_effective_sections(settings)
    ids = settings.get(ids_key) or []
    if ids:
        sections = [s for s in sections if s["id"] in ids]
    return _filter_by_category(sections, category)


def form_sections(settings: dict[str, Any], category: str | None = None) -> list[dict[str, Any]]:
    return _visible_sections(settings, "formSectionIds", category)


def card_sections(settings: dict[str, Any], category: str | None = None) -> list[dict[str, Any]]:
    return _visible_sections(settings, "cardSectionIds", category)


def card_fields_of(section: dict[str, Any], settings: dict[str, Any]) -> list[dict[str, Any]]:
    """
    区块在摘要卡片上显示的字段

    优先级:
        1) 设置里的显式覆盖列表（按覆盖列表的顺序）
        2) 字段自身的 isCard 默认标记
        3) 区块的第一个字段（保证卡片上至少有一个值）
    """
    fields = section.get("fields") or []
    configured = (settings.get("cardFields") or {}).get(section["id"]) or []
    if configured:
        by_key = {fld["key"]: fld for fld in fields}
        picked = [by_key[k] for k in configured if k in by_key]
        if picked:
            return picked
    defaults = [fld for fld in fields if fld.get("isCard")]
    if defaults:
        return defaults
    return fields[:1]


def filter_fields_for(settings: dict[str, Any], category: str | None = None) -> list[dict[str, Any]]:
    """筛选侧栏可用的字段；指定类别时只保留适用该类别的区块里的字段。"""
    fields = settings.get("filterFields") or []
    if not category:
        return list(fields)
    section_categories = settings.get("sectionCategories") or {}
    return [ff for ff in fields if category in section_categories.get(ff["sectionId"], [])]


def build_effective_schema(settings: dict[str, Any], category: str | None = None) -> list[dict[str, Any]]:
    """把生效的区块按表单/卡片/卡片字段/筛选字段标注出来。"""
    form_ids = {s["id"] for s in form_sections(settings, category)}
    card_ids = {s["id"] for s in card_sections(settings, category)}
    filters = filter_fields_for(settings, category)

    schema = []
    for section in _filter_by_category(build_effective_sections(settings), category):
        annotated = dict(section)
        annotated["inForm"] = section["id"] in form_ids
        annotated["inCard"] = section["id"] in card_ids
        annotated["cardFieldKeys"] = [fld["key"] for fld in card_fields_of(section, settings)]
        annotated["filterFields"] = [
            {"fieldKey": ff["fieldKey"], "filterType": ff["filterType"]}
            for ff in filters
            if ff["sectionId"] == section["id"]
        ]
        schema.append(annotated)
    return schema


# ==================== 持久化（带版本号） ====================

def load_settings(DB_FILE) -> tuple[dict[str, Any], int]:
    """返回 (原始覆盖层, 版本号)；从未保存过时为 ({}, 0)。"""
    stored = kv_get(SETTINGS_KEY, DB_FILE)
    if not isinstance(stored, dict):
        return {}, 0
    # 兼容未带版本号的旧文档（整个文档就是覆盖层）
    if "settings" not in stored or "version" not in stored:
        return stored, 0
    return stored.get("settings") or {}, int(stored.get("version") or 0)


def load_effective_settings(DB_FILE) -> dict[str, Any]:
    raw, _ = load_settings(DB_FILE)
    return merge_settings(raw)


def save_settings(raw: Any, expected_version: int | None, DB_FILE) -> tuple[dict[str, Any], int]:
    """
    乐观并发写入设置

    输入参数:
        raw: 管理员提交的覆盖层
        expected_version: 管理员读取时拿到的版本号；None 表示未提供

    异常:
        BadRequest: 覆盖层结构不合法
        PreconditionRequired: 未提供版本号
        Conflict: 版本号已过期（期间有人保存过）
    """
    ok, msg = _validate_settings(raw)
    if not ok:
        raise BadRequest(msg)
    if expected_version is None:
        raise PreconditionRequired("version required")

    def _apply(current):
        if isinstance(current, dict) and "settings" in current and "version" in current:
            version = int(current.get("version") or 0)
        else:
            version = 0
        if version != expected_version:
            raise Conflict(f"Settings version mismatch (current {version})")
        return {"version": version + 1, "settings": raw}

    stored = kv_update(SETTINGS_KEY, _apply, DB_FILE)
    logger.info("settings saved, version=%s", stored["version"])
    return stored["settings"], stored["version"]
