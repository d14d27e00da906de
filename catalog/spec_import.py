"""
文件目的: 把自由格式的 JSON 规格数据导入为设备记录

输入格式（单个对象或对象数组）:
    {
        "Marka": "Samsung", "Model": "Galaxy S24", "Kategori": "Telefon", "Fiyat": "42.999 TL",
        "Ekran": {"Ekran Boyutu": "6.2 inç", ...},
        "Batarya": {"Hızlı Şarj": "Var", ...}
    }

映射规则:
    - 区块名按 label_to_key 折叠后，匹配区块 id / title / tabLabel，或别名表
    - 字段 label 优先在“本类别适用的区块”里查找归属区块，找不到才用外层区块
    - 布尔字段解析 Var/Yok 等；列表值用 " / " 拼接
    - 区块里不认识的 label，如果该区块有“Diğer”字段，就追加成 "label: value" 一行
"""

import json
import logging
from typing import Any

from catalog.admin_settings import build_effective_sections, load_effective_settings
from catalog.errors import BadRequest, CatalogError
from catalog.phones import create_phone
from catalog.spec_config import label_to_key, to_bool
from constants import DEFAULT_CATEGORIES

logger = logging.getLogger(__name__)

SECTION_ALIASES = {
    "dayaniklilikOzellikleri": "dayaniklilik",
    "ozellikler": "sensorServis",
    "sensorlerVeServisler": "sensorServis",
    "abUrunKayitVeEnerjiEtiketi": "abEtiket",
}

OTHER_KEY = label_to_key("Diğer")


def _first(entry: dict[str, Any], *names: str, default: str = "") -> Any:
    for name in names:
        if entry.get(name):
            return entry[name]
    return default


def parse_text_value(value: Any) -> str:
    if isinstance(value, list):
        return " / ".join(str(item) for item in value)
    if value is None:
        return ""
    return str(value).strip()


def map_section_values(entry: dict[str, Any], sections: list[dict[str, Any]], category: str) -> dict[str, dict[str, Any]]:
    """
    把一条导入数据里的嵌套对象映射成 {sectionId: {fieldKey: value}}

    输入参数:
        entry: 原始导入对象
        sections: 当前生效的全部区块
        category: 记录所属类别（决定 label 优先落在哪些区块）
    """
    pool = [s for s in sections if category in (s.get("applicableCategories") or [])] or sections

    field_types = {s["id"]: {f["key"]: f.get("type") for f in s.get("fields") or []} for s in sections}
    section_ids = {s["id"] for s in sections}

    label_to_section: dict[str, str] = {}
    name_to_section: dict[str, str] = {}
    for section in pool:
        for field in section.get("fields") or []:
            label_to_section.setdefault(field["label"], section["id"])
        for name in (section["id"], section.get("title"), section.get("tabLabel")):
            if name:
                name_to_section.setdefault(label_to_key(name), section["id"])

    values: dict[str, dict[str, Any]] = {}
    for section_name, section_value in entry.items():
        if not isinstance(section_value, dict) or not section_value:
            continue
        normalized = label_to_key(section_name)
        fallback = name_to_section.get(normalized) or (
            normalized if normalized in section_ids else SECTION_ALIASES.get(normalized)
        )

        for label, value in section_value.items():
            label = str(label).strip()
            target = label_to_section.get(label) or fallback
            if not target:
                continue
            key = label_to_key(label)
            known = field_types.get(target, {})
            parsed = to_bool(value) if known.get(key) == "boolean" else parse_text_value(value)
            bucket = values.setdefault(target, {})

            if key in known:
                bucket[key] = parsed
            elif OTHER_KEY in known:
                existing = parse_text_value(bucket.get(OTHER_KEY))
                line = f"{label}: {parse_text_value(value)}"
                bucket[OTHER_KEY] = f"{existing}\n{line}" if existing else line
            else:
                bucket[key] = parsed

    return values


def build_import_payload(entry: dict[str, Any], settings: dict[str, Any]) -> dict[str, Any]:
    """一条导入数据 -> create_phone 可用的 payload（autoApprove=True）"""
    if not isinstance(entry, dict):
        raise BadRequest("import entry must be an object")

    title = _first(entry, "Model", "model", "title", default="Bilinmeyen Model")
    brand = _first(entry, "Marka", "brand", default="Bilinmeyen Marka")
    category = _first(entry, "Kategori", "kategori", "category", default=DEFAULT_CATEGORIES[0])

    image_list = entry.get("images")
    if isinstance(image_list, list):
        images = [{"src": str(src), "alt": title, "color": ""} for src in image_list if src]
    else:
        image_url = _first(entry, "resim url", "Resim URL", "resimUrl", "image")
        images = [{"src": image_url, "alt": title, "color": ""}] if image_url else []

    sections = build_effective_sections(settings)
    return {
        "brand": brand,
        "title": title,
        "shortDesc": _first(entry, "Kısa Açıklama", "Kisa Aciklama", "shortDesc", "Açıklama"),
        "tagline": _first(entry, "Slogan", "tagline"),
        "price": _first(entry, "Fiyat", "price"),
        "category": category,
        "images": images,
        "specs": {"sections": map_section_values(entry, sections, category)},
        "autoApprove": True,
    }


def load_entries(path: str) -> list[dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as fp:
        data = json.load(fp)
    return data if isinstance(data, list) else [data]


def import_entries(entries: list[Any], admin: dict[str, Any], DB_FILE) -> dict[str, Any]:
    """
    批量导入（管理员身份，直接通过审核）

    返回值:
        dict: {"imported": [id, ...], "errors": ["#序号 说明", ...]}
        单条失败不影响其他条目
    """
    settings = load_effective_settings(DB_FILE)
    imported, errors = [], []
    for index, entry in enumerate(entries, start=1):
        try:
            payload = build_import_payload(entry, settings)
            phone = create_phone(payload, admin, admin, DB_FILE)
        except CatalogError as exc:
            errors.append(f"#{index}: {exc.message}")
            continue
        imported.append(phone["id"])
    logger.info("import finished: %s imported, %s failed", len(imported), len(errors))
    return {"imported": imported, "errors": errors}
