"""
文件目的: 两台设备的逐字段对比

输出结构:
    [{"sectionId", "sectionTitle", "rows": [{"label", "valueA", "valueB"}]}]
    - 区块顺序按 selected_section_ids 的顺序
    - 行顺序按区块内字段的声明顺序
    - 两侧都为空的字段不出行；没有任何行的区块不输出
"""

from typing import Any

from constants import BOOL_FALSE_TEXT, BOOL_TRUE_TEXT, EMPTY_PLACEHOLDER

PAIR_SEPARATORS = ("-vs-", "--")


def format_value(value: Any) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, bool):
        return BOOL_TRUE_TEXT if value else BOOL_FALSE_TEXT
    return str(value)


def _section_values(item: dict[str, Any] | None, section_id: str) -> dict[str, Any]:
    sections = ((item or {}).get("specs") or {}).get("sections") or {}
    return sections.get(section_id) or {}


def compare(
    item_a: dict[str, Any],
    item_b: dict[str, Any],
    selected_section_ids: list[str],
    sections: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    by_id = {section["id"]: section for section in sections}
    result = []
    for section_id in selected_section_ids:
        section = by_id.get(section_id)
        if not section:
            continue
        values_a = _section_values(item_a, section_id)
        values_b = _section_values(item_b, section_id)

        rows = []
        for field in section.get("fields") or []:
            a = format_value(values_a.get(field["key"]))
            b = format_value(values_b.get(field["key"]))
            if not a and not b:
                continue
            rows.append({
                "label": field["label"],
                "valueA": a or EMPTY_PLACEHOLDER,
                "valueB": b or EMPTY_PLACEHOLDER,
            })

        if rows:
            result.append({"sectionId": section_id, "sectionTitle": section["title"], "rows": rows})
    return result


def parse_pair(value: str | None) -> tuple[str, str] | None:
    """分享链接 'a-vs-b'（或旧格式 'a--b'）拆成两个 slug；格式不对返回 None。"""
    if not value:
        return None
    for sep in PAIR_SEPARATORS:
        if sep in value:
            left, _, right = value.partition(sep)
            return (left, right) if left and right else None
    return None


def build_pair(slug_a: str, slug_b: str) -> str:
    return f"{slug_a}{PAIR_SEPARATORS[0]}{slug_b}"
