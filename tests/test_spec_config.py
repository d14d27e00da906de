import re

import pytest

from catalog.spec_config import (
    BUILTIN_SECTION_IDS,
    RAM_RULE,
    SECTION_CONFIG,
    builtin_numeric_rule,
    get_builtin_section,
    label_to_key,
    normalize_field,
    to_bool,
)

KEY_PATTERN = re.compile(r"^[a-z][A-Za-z0-9]*$")


@pytest.mark.parametrize(
    "label, expected",
    [
        ("Batarya Kapasitesi (Tipik)", "bataryaKapasitesi"),
        ("Bellek (RAM)", "bellek"),
        ("İşletim Sistemi", "isletimSistemi"),
        ("Wi-Fi Kanalları", "wiFiKanallari"),
        ("Ekran / Gövde Oranı", "ekranGovdeOrani"),
        ("5G", "n5g"),
        ("4.5G Desteği", "n45gDestegi"),
        ("", "value"),
        ("(---)", "value"),
        ("!!!", "value"),
    ],
)
def test_label_to_key(label, expected):
    assert label_to_key(label) == expected


def test_registry_keys_are_stable_and_well_formed():
    for section in SECTION_CONFIG:
        keys = [field["key"] for field in section["fields"]]
        # 同一区块内 key 不能重复
        assert len(keys) == len(set(keys)), section["id"]
        for field in section["fields"]:
            assert KEY_PATTERN.match(field["key"]), field["label"]
            assert label_to_key(field["label"]) == field["key"]
            assert field["type"] in ("text", "textarea", "boolean")


def test_builtin_section_lookup():
    assert BUILTIN_SECTION_IDS[0] == "ekran"
    assert get_builtin_section("batarya")["title"] == "Batarya"
    assert get_builtin_section("yok-boyle-bir-bolum") is None


def test_builtin_numeric_rules():
    assert builtin_numeric_rule("ramDepolama", "bellek") == RAM_RULE
    assert builtin_numeric_rule("ramDepolama", "ramTipi") is None
    assert builtin_numeric_rule("ozel", "bellek") is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Var", True),
        ("evet", True),
        ("1", True),
        (1, True),
        ("Yok", False),
        ("Hayır", False),
        ("false", False),
        (0, False),
        (None, False),
        ("", False),
    ],
)
def test_to_bool(value, expected):
    assert to_bool(value) is expected


def test_normalize_field():
    assert normalize_field({"label": "Çentik Tipi", "type": "checkbox"}) == {
        "key": "centikTipi",
        "label": "Çentik Tipi",
        "type": "boolean",
    }
    assert normalize_field({"label": "Not", "type": "weird", "isCard": 1})["type"] == "text"
    assert normalize_field({"label": "  "}) is None
    assert normalize_field("Ekran") is None
