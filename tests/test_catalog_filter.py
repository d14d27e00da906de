import pytest

from catalog.catalog_filter import (
    collect_brands,
    collect_categories,
    filter_items,
    format_filter_value,
    infer_numeric_rule,
    numeric_stats,
    parse_numeric_value,
    parse_price,
)
from catalog.spec_config import CORES_RULE, RAM_RULE, SCORE_RULE, STORAGE_RULE

FILTER_FIELDS = [
    {"sectionId": "ramDepolama", "fieldKey": "bellek", "label": "Bellek (RAM)", "type": "text", "filterType": "range"},
    {"sectionId": "kablosuzBaglantilar", "fieldKey": "nfc", "label": "NFC", "type": "boolean", "filterType": "boolean"},
    {
        "sectionId": "isletimSistemi",
        "fieldKey": "isletimSistemi",
        "label": "İşletim Sistemi",
        "type": "text",
        "filterType": "text",
    },
]

ITEMS = [
    {
        "id": "a",
        "brand": "Samsung",
        "title": "Galaxy S24",
        "category": "Telefon",
        "price": "42.999 TL",
        "submittedAt": "2024-03-01T10:00:00.000Z",
        "filters": {
            "ramDepolama:bellek": "8 GB",
            "kablosuzBaglantilar:nfc": True,
            "isletimSistemi:isletimSistemi": "Android",
        },
    },
    {
        "id": "b",
        "brand": "Apple",
        "title": "iPhone 15",
        "category": "Telefon",
        "price": "54.999 TL",
        "submittedAt": "2024-02-01T10:00:00.000Z",
        "filters": {
            "ramDepolama:bellek": "6 GB",
            "kablosuzBaglantilar:nfc": True,
            "isletimSistemi:isletimSistemi": "iOS",
        },
    },
    {
        "id": "c",
        "brand": "Xiaomi",
        "title": "Redmi Note 13 Pro",
        "category": "Telefon",
        "price": "17.499 TL",
        "submittedAt": "2024-04-01T10:00:00.000Z",
        "filters": {
            "ramDepolama:bellek": "8 GB / 12 GB (1 TB'a kadar)",
            "kablosuzBaglantilar:nfc": False,
            "isletimSistemi:isletimSistemi": "Android",
        },
    },
    {
        "id": "d",
        "brand": "Nokia",
        "title": "3310",
        "category": "Tuşlu",
        "price": "",
        "submittedAt": "2023-01-01T10:00:00.000Z",
        "filters": {},
    },
]


def ids(items):
    return [item["id"] for item in items]


# ==================== 价格解析 ====================

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12.500,50", 12500.5),
        ("12,500", 12500.0),
        ("12,5", 12.5),
        ("42.999 TL", 42999.0),
        ("1.299.999 ₺", 1299999.0),
        ("1,234.56", 1234.56),
        (1500, 1500.0),
        ("", None),
        ("fiyat yok", None),
        (None, None),
    ],
)
def test_parse_price(raw, expected):
    assert parse_price(raw) == expected


# ==================== 数值提取 ====================

@pytest.mark.parametrize(
    "raw, rule, expected",
    [
        ("8 GB / 12 GB (1 TB'a kadar)", RAM_RULE, 12),
        ("512 MB", RAM_RULE, 0.5),
        ("128 GB / 256 GB / 512 GB", STORAGE_RULE, 512),
        ("8 Çekirdek (1+3+4)", CORES_RULE, 8),
        ("Single 2100, Multi 6500", SCORE_RULE, 6500),
        ("bilinmiyor", RAM_RULE, None),
        (True, RAM_RULE, None),
    ],
)
def test_parse_numeric_value(raw, rule, expected):
    assert parse_numeric_value(raw, rule) == expected


def test_infer_numeric_rule_from_label():
    assert infer_numeric_rule("Ek Bellek")["memory"] is True
    assert infer_numeric_rule("Batarya Kapasitesi")["unit"] == "mAh"
    assert infer_numeric_rule("AnTuTu Puanı")["pick"] == "max"
    assert infer_numeric_rule("Renk")["pick"] == "first"


def test_numeric_stats_use_full_list():
    assert numeric_stats(ITEMS, FILTER_FIELDS) == {"ramDepolama:bellek": {"min": 6.0, "max": 12.0}}


# ==================== 筛选 ====================

def test_not_applied_yields_empty_list():
    assert filter_items(ITEMS, {}, FILTER_FIELDS, applied=False) == []


def test_no_criteria_returns_everything_newest_first():
    assert ids(filter_items(ITEMS, {}, FILTER_FIELDS)) == ["c", "a", "b", "d"]


@pytest.mark.parametrize(
    "criteria, expected",
    [
        ({"category": "Tümü", "brand": "all"}, ["c", "a", "b", "d"]),
        ({"category": "tuşlu"}, ["d"]),
        ({"brand": "APPLE"}, ["b"]),
        ({"search": "note 13"}, ["c"]),
        ({"min_price": "20.000"}, ["a", "b"]),
        ({"max_price": "50000"}, ["c", "a"]),
        ({"field_filters": {"kablosuzBaglantilar:nfc": "true"}}, ["a", "b"]),
        ({"field_filters": {"kablosuzBaglantilar:nfc": "false"}}, ["c"]),
        ({"field_filters": {"isletimSistemi:isletimSistemi": "andro"}}, ["c", "a"]),
        ({"range_filters": {"ramDepolama:bellek": {"min": 10}}}, ["c"]),
        ({"range_filters": {"ramDepolama:bellek": {"min": "", "max": "7"}}}, ["b"]),
    ],
)
def test_single_criterion(criteria, expected):
    assert ids(filter_items(ITEMS, criteria, FILTER_FIELDS)) == expected


def test_unparseable_price_is_excluded_by_any_bound():
    assert "d" not in ids(filter_items(ITEMS, {"min_price": "0"}, FILTER_FIELDS))
    assert "d" in ids(filter_items(ITEMS, {}, FILTER_FIELDS))


def test_more_criteria_never_grow_the_result():
    steps = [
        {},
        {"category": "Telefon"},
        {"field_filters": {"kablosuzBaglantilar:nfc": "true"}},
        {"min_price": "40000"},
        {"search": "galaxy"},
    ]
    criteria: dict = {}
    previous = ids(filter_items(ITEMS, criteria, FILTER_FIELDS))
    for step in steps:
        criteria = {**criteria, **step}
        current = ids(filter_items(ITEMS, criteria, FILTER_FIELDS))
        assert set(current) <= set(previous)
        assert set(current) <= set(ids(ITEMS))
        previous = current
    assert previous == ["a"]


@pytest.mark.parametrize(
    "sort_by, expected",
    [
        ("latest", ["c", "a", "b", "d"]),
        ("priceAsc", ["d", "c", "a", "b"]),
        ("priceDesc", ["b", "a", "c", "d"]),
        ("name", ["b", "d", "a", "c"]),
    ],
)
def test_sorting(sort_by, expected):
    assert ids(filter_items(ITEMS, {"sort_by": sort_by}, FILTER_FIELDS)) == expected


def test_full_records_are_read_from_sections():
    full = [{
        "id": "x",
        "brand": "Oppo",
        "title": "Reno",
        "specs": {"sections": {"kablosuzBaglantilar": {"nfc": "Var"}}},
    }]
    criteria = {"field_filters": {"kablosuzBaglantilar:nfc": "true"}}
    assert ids(filter_items(full, criteria, FILTER_FIELDS)) == ["x"]


# ==================== 展示 ====================

def test_format_filter_value():
    ram, nfc, os_field = FILTER_FIELDS
    assert format_filter_value("12", ram) == "12 GB"
    assert format_filter_value("12 GB", ram) == "12 GB"
    assert format_filter_value(True, nfc) == "Var"
    assert format_filter_value("yok", nfc) == "Yok"
    assert format_filter_value("Android", os_field) == "Android"
    assert format_filter_value("", ram) == "—"


def test_collect_brands_and_categories():
    assert collect_brands(ITEMS) == ["Apple", "Nokia", "Samsung", "Xiaomi"]
    assert collect_categories(ITEMS, ["Telefon", "Tablet"]) == ["Telefon", "Tablet", "Tuşlu"]
    assert collect_categories([], []) == ["Telefon"]
