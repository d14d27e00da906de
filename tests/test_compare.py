import pytest

from catalog.admin_settings import build_effective_sections, merge_settings
from catalog.compare import build_pair, compare, format_value, parse_pair
from catalog.phone_slug import build_phone_slug, slugify

SECTIONS = build_effective_sections(merge_settings())

PHONE_A = {
    "specs": {
        "sections": {
            "ekran": {"ekranBoyutu": "6.2 inç", "ekranTeknolojisi": ""},
            "kamera": {"kameraCozunurlugu": "50 MP"},
            "kablosuzBaglantilar": {"nfc": True},
        }
    }
}
PHONE_B = {
    "specs": {
        "sections": {
            "ekran": {"ekranBoyutu": "6.1 inç"},
            "kablosuzBaglantilar": {"nfc": False},
        }
    }
}


def test_rows_follow_selection_and_placeholder():
    result = compare(PHONE_A, PHONE_B, ["kamera", "ekran", "batarya"], SECTIONS)

    assert [block["sectionId"] for block in result] == ["kamera", "ekran"]
    assert result[0]["sectionTitle"] == "Kamera"
    assert result[0]["rows"] == [{"label": "Kamera Çözünürlüğü", "valueA": "50 MP", "valueB": "-"}]
    assert result[1]["rows"] == [{"label": "Ekran Boyutu", "valueA": "6.2 inç", "valueB": "6.1 inç"}]


def test_booleans_render_localized():
    result = compare(PHONE_A, PHONE_B, ["kablosuzBaglantilar"], SECTIONS)
    assert result[0]["rows"] == [{"label": "NFC", "valueA": "Var", "valueB": "Yok"}]


def test_unknown_sections_and_empty_items_are_skipped():
    assert compare(PHONE_A, PHONE_B, ["yokBoyle"], SECTIONS) == []
    assert compare({}, {}, ["ekran"], SECTIONS) == []


@pytest.mark.parametrize(
    "value, expected",
    [(None, ""), ("", ""), (True, "Var"), (False, "Yok"), (12, "12")],
)
def test_format_value(value, expected):
    assert format_value(value) == expected


@pytest.mark.parametrize(
    "pair, expected",
    [
        ("samsung-galaxy-s24-vs-apple-iphone-15", ("samsung-galaxy-s24", "apple-iphone-15")),
        ("samsung-galaxy-s24--apple-iphone-15", ("samsung-galaxy-s24", "apple-iphone-15")),
        ("samsung-galaxy-s24", None),
        ("-vs-apple-iphone-15", None),
        ("", None),
    ],
)
def test_parse_pair(pair, expected):
    assert parse_pair(pair) == expected


def test_build_pair_round_trips():
    assert parse_pair(build_pair("a-1", "b-2")) == ("a-1", "b-2")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Xiaomi Redmi Note 13 Pro+", "xiaomi-redmi-note-13-pro"),
        ("Çağlar Şüküroğlu İ", "caglar-sukuroglu-i"),
        ("Café  Déjà", "cafe-deja"),
        ("  --  ", ""),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_build_phone_slug():
    assert build_phone_slug("Samsung", "Galaxy S24") == "samsung-galaxy-s24"
    assert build_phone_slug(None, "Galaxy S24") == "galaxy-s24"
