import json

import pytest

from catalog.admin_settings import build_effective_sections, merge_settings
from catalog.errors import BadRequest
from catalog.phones import get_phone
from catalog.spec_import import build_import_payload, import_entries, load_entries, map_section_values

ENTRY = {
    "Marka": "Samsung",
    "Model": "Galaxy S24",
    "Kategori": "Telefon",
    "Fiyat": "42.999 TL",
    "resim url": "https://example.com/s24.png",
    "Ekran": {"Ekran Boyutu": "6.2 inç", "NFC": "Var"},
    "Batarya": {"Hızlı Şarj": "Evet", "Kablosuz Şarj": "Yok"},
    "Kamera": {"Kamera Özellikleri": ["HDR", "Gece modu"]},
    "Dayanıklılık Özellikleri": {"Suya Dayanıklılık Seviyesi": "IP68"},
    "Özellikler": {"Sensörler": "İvmeölçer"},
}


def test_build_import_payload():
    payload = build_import_payload(ENTRY, merge_settings())
    sections = payload["specs"]["sections"]

    assert payload["brand"] == "Samsung"
    assert payload["title"] == "Galaxy S24"
    assert payload["price"] == "42.999 TL"
    assert payload["autoApprove"] is True
    assert payload["images"] == [{"src": "https://example.com/s24.png", "alt": "Galaxy S24", "color": ""}]

    assert sections["ekran"]["ekranBoyutu"] == "6.2 inç"
    # 字段 label 优先决定归属区块
    assert sections["kablosuzBaglantilar"]["nfc"] is True
    assert "nfc" not in sections["ekran"]
    assert sections["batarya"] == {"hizliSarj": True, "kablosuzSarj": False}
    assert sections["kamera"]["kameraOzellikleri"] == "HDR / Gece modu"
    assert sections["dayaniklilik"]["suyaDayaniklilikSeviyesi"] == "IP68"
    assert sections["sensorServis"]["sensorler"] == "İvmeölçer"


def test_missing_identity_fields_get_placeholders():
    payload = build_import_payload({"Ekran": {"Ekran Boyutu": "6 inç"}}, merge_settings())
    assert payload["brand"] == "Bilinmeyen Marka"
    assert payload["title"] == "Bilinmeyen Model"
    assert payload["category"] == "Telefon"
    assert payload["images"] == []


def test_unknown_labels_go_to_other_field():
    settings = merge_settings({
        "customSections": [{"id": "ekstra", "title": "Ekstra", "fields": [{"label": "Diğer"}]}],
    })
    values = map_section_values(
        {"Ekstra": {"Kutu İçeriği": "Şarj aleti", "Garanti": "2 yıl"}},
        build_effective_sections(settings),
        "Telefon",
    )
    assert values == {"ekstra": {"diger": "Kutu İçeriği: Şarj aleti\nGaranti: 2 yıl"}}


def test_non_object_entry_is_rejected():
    with pytest.raises(BadRequest):
        build_import_payload(["Samsung"], merge_settings())


def test_import_entries_collects_errors(db_file, admin_profile):
    result = import_entries([ENTRY, "bozuk", {"Marka": "", "Model": "X"}], admin_profile, db_file)

    assert len(result["imported"]) == 2
    assert result["errors"] == ["#2: import entry must be an object"]

    phone = get_phone(result["imported"][0], db_file)
    assert phone["status"] == "approved"
    assert phone["reviewedBy"] == admin_profile["id"]
    assert phone["slug"] == "samsung-galaxy-s24"
    assert phone["specs"]["display"]["size"] == "6.2 inç"


def test_load_entries_accepts_single_object(tmp_path):
    path = tmp_path / "one.json"
    path.write_text(json.dumps({"Marka": "Apple"}), encoding="utf-8")
    assert load_entries(str(path)) == [{"Marka": "Apple"}]
