"""
文件目的: 目录浏览页的筛选/排序逻辑

功能描述:
    输入摘要列表（或完整记录）、筛选条件和生效的筛选字段，
    所有条件 AND 组合后排序输出。包含:
    - 价格字符串解析（千分位/小数点消歧）
    - 布尔三态筛选（all / true / false）
    - 文本子串筛选
    - 数值区间筛选（按字段声明的 numeric 规则提取代表数值）
"""

import re
from typing import Any

from catalog.spec_config import builtin_numeric_rule
from catalog.util import iso_sort_key
from constants import ALL_SENTINEL, BOOL_FALSE_TEXT, BOOL_TRUE_TEXT, DEFAULT_CATEGORIES

SORT_OPTIONS = ("latest", "priceAsc", "priceDesc", "name")

_NUMBER = re.compile(r"\d+(?:[.,]\d+)?")
_MEMORY_NUMBER = re.compile(r"(\d+(?:[.,]\d+)?)\s*(GB|MB)", re.IGNORECASE)


def normalize(value) -> str:
    return str(value or "").strip().lower()


def is_all(value) -> bool:
    text = normalize(value)
    return not text or text in ("all", ALL_SENTINEL.lower())


def default_criteria() -> dict[str, Any]:
    return {
        "search": "",
        "category": ALL_SENTINEL,
        "brand": ALL_SENTINEL,
        "min_price": "",
        "max_price": "",
        "sort_by": "latest",
        "field_filters": {},
        "range_filters": {},
    }


# ==================== 价格解析 ====================

def _to_number(text: str) -> float | None:
    try:
        return float(text)
    except ValueError:
        return None


def parse_price(value) -> float | None:
    """
    解析格式宽松的价格字符串

    规则:
        - 先去掉数字和 . , 以外的字符（货币符号、空格、TL 等）
        - 同时有 . 和 , 时，最后出现的那个是小数点，另一个是千分位
          "12.500,50" -> 12500.5
        - 只有一种分隔符: 出现多次、或只出现一次且后面正好 3 位数字时视为千分位
          "12,500" -> 12500，"12,5" -> 12.5
        - 解析不出来返回 None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    raw = re.sub(r"[^0-9.,]", "", str(value)).strip()
    if not raw or not re.search(r"\d", raw):
        return None

    if "," in raw and "." in raw:
        decimal = "," if raw.rfind(",") > raw.rfind(".") else "."
        thousands = "." if decimal == "," else ","
        return _to_number(raw.replace(thousands, "").replace(decimal, "."))

    sep = "," if "," in raw else ("." if "." in raw else None)
    if sep is None:
        return _to_number(raw)
    head, _, tail = raw.rpartition(sep)
    if raw.count(sep) > 1 or (len(tail) == 3 and head):
        return _to_number(raw.replace(sep, ""))
    return _to_number(raw.replace(sep, "."))


# ==================== 布尔 / 数值提取 ====================

def normalize_bool(value) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in ("var", "true", "evet", "yes"):
            return True
        if lower in ("yok", "false", "hayir", "hayır", "no"):
            return False
    return None


def infer_numeric_rule(label: str) -> dict[str, Any]:
    """
    没有显式 numeric 声明的字段（例如管理员新加的字段），按 label 关键字推断规则。
    内置字段的规则在注册表里声明，不走这里。
    """
    text = (label or "").lower()
    if "ram" in text or "bellek" in text:
        return {"unit": "GB", "pick": "maxUnder", "ceiling": 128, "memory": True}
    if "depolama" in text:
        return {"unit": "GB", "pick": "maxUnder", "ceiling": 4096, "memory": False}
    if "ekran boyutu" in text:
        return {"unit": "inç", "pick": "first", "ceiling": None, "memory": False}
    if "batarya" in text:
        unit = "mAh" if "batarya kapasitesi" in text else ""
        return {"unit": unit, "pick": "maxUnder", "ceiling": 20000, "memory": False}
    if "kamera" in text:
        unit = "MP" if ("kamera çözünürlüğü" in text or "kamera cozunurlugu" in text) else ""
        return {"unit": unit, "pick": "maxUnder", "ceiling": 300, "memory": False}
    if "cpu" in text or "işlemci" in text or "islemci" in text or "cekirdek" in text or "çekirdek" in text:
        is_cores = "çekirdeğ" in text or "cekirdeg" in text or "çekirdek" in text or "cekirdek" in text
        return {"unit": "çekirdek" if is_cores else "", "pick": "maxUnder", "ceiling": 32, "memory": False}
    if "antutu" in text or "geekbench" in text or "puan" in text:
        return {"unit": "puan", "pick": "max", "ceiling": None, "memory": False}
    return {"unit": "", "pick": "first", "ceiling": None, "memory": False}


def numeric_rule_for(field: dict[str, Any]) -> dict[str, Any]:
    """筛选字段的数值规则：字段自带 > 内置注册表 > label 推断。"""
    if isinstance(field.get("numeric"), dict):
        return field["numeric"]
    rule = builtin_numeric_rule(field.get("sectionId", ""), field.get("fieldKey", ""))
    if rule:
        return rule
    return infer_numeric_rule(field.get("label", ""))


def _pick(values: list[float], rule: dict[str, Any]) -> float:
    pick = rule.get("pick", "first")
    if pick == "max":
        return max(values)
    if pick == "maxUnder" and rule.get("ceiling") is not None:
        under = [v for v in values if v <= rule["ceiling"]]
        return max(under) if under else min(values)
    return values[0]


def parse_numeric_value(value, rule: dict[str, Any]) -> float | None:
    """
    从自由文本里提取一个代表数值

    例如 RAM 字段 "8 GB / 12 GB (1 TB'a kadar)":
        带单位的读数里取 <= 128 的最大值 -> 12（排除“最高 1TB”这类离群值）
    """
    if value is None or isinstance(value, bool):
        return None
    raw = str(value)

    if rule.get("memory"):
        unit_values = []
        for number, unit in _MEMORY_NUMBER.findall(raw):
            num = _to_number(number.replace(",", "."))
            if num is None:
                continue
            unit_values.append(num / 1024 if unit.upper() == "MB" else num)
        if unit_values:
            return _pick(unit_values, rule)

    values = [v for v in (_to_number(m.replace(",", ".")) for m in _NUMBER.findall(raw)) if v is not None]
    if not values:
        return None
    return _pick(values, rule)


def unit_label(field: dict[str, Any]) -> str:
    return numeric_rule_for(field).get("unit") or ""


def format_filter_value(value, field: dict[str, Any]) -> str:
    """筛选结果表格里的单元格文本；已带单位的值不重复追加。"""
    if value is None or value == "":
        return "—"
    if field.get("type") == "boolean":
        flag = normalize_bool(value)
        if flag is not None:
            return BOOL_TRUE_TEXT if flag else BOOL_FALSE_TEXT
    text = str(value)
    unit = unit_label(field)
    if unit and unit.lower() in text.lower():
        return text
    return f"{text} {unit}" if unit else text


# ==================== 筛选 ====================

def filter_key(field: dict[str, Any]) -> str:
    return f"{field['sectionId']}:{field['fieldKey']}"


def filter_mode(field: dict[str, Any]) -> str:
    return field.get("filterType") or ("boolean" if field.get("type") == "boolean" else "text")


def item_field_value(item: dict[str, Any], section_id: str, field_key: str):
    """摘要记录读 filters，完整记录读 specs.sections。"""
    filters = item.get("filters")
    if isinstance(filters, dict) and f"{section_id}:{field_key}" in filters:
        return filters[f"{section_id}:{field_key}"]
    sections = (item.get("specs") or {}).get("sections") or {}
    return (sections.get(section_id) or {}).get(field_key)


def numeric_stats(items: list[dict[str, Any]], filter_fields: list[dict[str, Any]]) -> dict[str, dict[str, float]]:
    """
    每个区间字段在“完整未筛选列表”上的最小/最大值
    （滑块边界不会随筛选收缩）
    """
    stats = {}
    for field in filter_fields:
        if filter_mode(field) != "range":
            continue
        rule = numeric_rule_for(field)
        values = [
            v
            for v in (
                parse_numeric_value(item_field_value(item, field["sectionId"], field["fieldKey"]), rule)
                for item in items
            )
            if v is not None
        ]
        if values:
            stats[filter_key(field)] = {"min": min(values), "max": max(values)}
    return stats


def _bound(value, fallback: float) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        return fallback
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    number = _to_number(str(value).strip().replace(",", "."))
    return fallback if number is None else number


def _matches(item, criteria, filter_fields, stats, min_price, max_price, query) -> bool:
    if not is_all(criteria.get("category")) and normalize(item.get("category")) != normalize(criteria["category"]):
        return False
    if not is_all(criteria.get("brand")) and normalize(item.get("brand")) != normalize(criteria["brand"]):
        return False
    if query:
        text = f"{item.get('brand') or ''} {item.get('title') or ''}".lower()
        if query not in text:
            return False

    # 给了价格边界但价格解析失败：排除
    if min_price is not None or max_price is not None:
        price = parse_price(item.get("price"))
        if price is None:
            return False
        if min_price is not None and price < min_price:
            return False
        if max_price is not None and price > max_price:
            return False

    field_filters = criteria.get("field_filters") or {}
    range_filters = criteria.get("range_filters") or {}
    for field in filter_fields:
        key = filter_key(field)
        mode = filter_mode(field)
        raw = item_field_value(item, field["sectionId"], field["fieldKey"])

        if mode == "range":
            selected = range_filters.get(key)
            bounds = stats.get(key)
            if not selected or not bounds:
                continue
            low = _bound(selected.get("min"), bounds["min"])
            high = _bound(selected.get("max"), bounds["max"])
            value = parse_numeric_value(raw, numeric_rule_for(field))
            if value is None or value < low or value > high:
                return False
            continue

        wanted = field_filters.get(key)
        if not wanted or wanted == "all":
            continue
        if mode == "boolean":
            flag = normalize_bool(raw)
            if wanted == "true" and flag is not True:
                return False
            if wanted == "false" and flag is not False:
                return False
            continue
        if isinstance(raw, bool):
            raw = str(raw).lower()
        text = normalize(raw)
        if not text or normalize(wanted) not in text:
            return False

    return True


def sort_items(items: list[dict[str, Any]], sort_by: str = "latest") -> list[dict[str, Any]]:
    if sort_by == "priceAsc":
        return sorted(items, key=lambda x: parse_price(x.get("price")) or 0)
    if sort_by == "priceDesc":
        return sorted(items, key=lambda x: parse_price(x.get("price")) or 0, reverse=True)
    if sort_by == "name":
        return sorted(items, key=lambda x: f"{x.get('brand') or ''} {x.get('title') or ''}".casefold())
    return sorted(items, key=lambda x: iso_sort_key(x.get("submittedAt")), reverse=True)


def filter_items(
    items: list[dict[str, Any]],
    criteria: dict[str, Any] | None,
    filter_fields: list[dict[str, Any]],
    applied: bool = True,
    stats: dict[str, dict[str, float]] | None = None,
) -> list[dict[str, Any]]:
    """
    筛选并排序

    输入参数:
        items: 完整（未筛选）的记录列表
        criteria: 见 default_criteria()；缺省键按默认值处理
        filter_fields: 当前类别下生效的筛选字段
        applied: 用户是否点过“应用”；未应用时结果为空列表
        stats: 区间边界；不传时在 items 上现算

    返回值:
        list: items 的子集（按 sort_by 排序）
    """
    if not applied:
        return []
    merged = default_criteria()
    merged.update(criteria or {})
    if stats is None:
        stats = numeric_stats(items, filter_fields)

    min_price = parse_price(merged.get("min_price")) if merged.get("min_price") not in (None, "") else None
    max_price = parse_price(merged.get("max_price")) if merged.get("max_price") not in (None, "") else None
    query = normalize(merged.get("search"))

    result = [
        item
        for item in items
        if _matches(item, merged, filter_fields, stats, min_price, max_price, query)
    ]
    return sort_items(result, merged.get("sort_by") or "latest")


def collect_brands(items: list[dict[str, Any]]) -> list[str]:
    return sorted({str(i["brand"]) for i in items if i.get("brand")}, key=str.casefold)


def collect_categories(items: list[dict[str, Any]], configured: list[str]) -> list[str]:
    """设置里的类别 + 数据里出现过的类别（去重保序）。"""
    out = []
    for category in list(configured) + [i.get("category") for i in items]:
        if category and category not in out:
            out.append(category)
    return out or list(DEFAULT_CATEGORIES)
