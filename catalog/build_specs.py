"""
文件目的: 把按区块分组的表单值组装成 specs 文档

specs.sections 是唯一的数据来源；display / battery / comms 等“便捷分组”
只是按旧版扁平字段名派生出来的只读视图，读取时现算，不入库。
"""

from typing import Any

from catalog.spec_config import SECTION_CONFIG, field_default, label_to_key
from constants import BOOL_FALSE_TEXT, BOOL_TRUE_TEXT

DIMENSION_SEPARATOR = " × "

CONVENIENCE_GROUPS = (
    "network", "body", "display", "platform", "memory", "mainCamera",
    "selfieCamera", "sound", "comms", "features", "battery", "misc",
)

_BUILTIN_BY_ID = {section["id"]: section for section in SECTION_CONFIG}


def var_yok(value: Any) -> str:
    return BOOL_TRUE_TEXT if value else BOOL_FALSE_TEXT


def fill_defaults(values: dict[str, Any] | None, fields: list[dict[str, Any]]) -> dict[str, Any]:
    """缺失字段补默认值：文本为 ""，布尔为 False；已有值原样保留。非字典输入按空处理。"""
    out = dict(values) if isinstance(values, dict) else {}
    for field in fields:
        if out.get(field["key"]) is None:
            out[field["key"]] = field_default(field)
    return out


def _text(values: dict[str, Any], label: str) -> str:
    value = values.get(label_to_key(label))
    if value is None or value is False:
        return ""
    return str(value)


def _flag(values: dict[str, Any], label: str) -> bool:
    return bool(values.get(label_to_key(label)))


def _join(parts: list[str], sep: str) -> str:
    return sep.join(p for p in parts if (p or "").strip())


def build_specs(section_values: dict[str, dict[str, Any]] | None, sections: list[dict[str, Any]]) -> dict[str, Any]:
    """
    组装规格文档

    输入参数:
        section_values: {sectionId: {fieldKey: value}}
        sections: 当前生效的区块列表（决定 sections 里要补齐哪些字段）

    返回值:
        dict: 12 个便捷分组 + sections（规范数据）
        输入全空时，每个分组和字段也都存在（"" / False）

    纯函数，无 I/O。
    """
    section_values = section_values if isinstance(section_values, dict) else {}

    # 规范数据：生效区块补齐默认值；未知区块原样保留
    canonical: dict[str, dict[str, Any]] = {}
    for section in sections:
        canonical[section["id"]] = fill_defaults(section_values.get(section["id"]), section.get("fields") or [])
    for section_id, values in section_values.items():
        if section_id not in canonical and isinstance(values, dict):
            canonical[section_id] = dict(values)

    # 内置区块的取值（注册表字段先补默认，再叠加规范数据）
    def builtin(section_id: str) -> dict[str, Any]:
        base = _BUILTIN_BY_ID[section_id]
        return fill_defaults(canonical.get(section_id), base["fields"])

    ekran = builtin("ekran")
    batarya = builtin("batarya")
    kamera = builtin("kamera")
    temel_donanim = builtin("temelDonanim")
    ram_depolama = builtin("ramDepolama")
    tasarim = builtin("tasarim")
    ag = builtin("agBaglantilari")
    os_values = builtin("isletimSistemi")
    kablosuz = builtin("kablosuzBaglantilar")
    coklu_ortam = builtin("cokluOrtam")
    dayaniklilik = builtin("dayaniklilik")
    sensor_servis = builtin("sensorServis")
    diger = builtin("digerBaglantilar")
    ab_etiket = builtin("abEtiket")
    temel_bilgiler = builtin("temelBilgiler")

    network_technology = " / ".join(
        name
        for name, label in (("2G", "2G"), ("3G", "3G"), ("4G", "4G"), ("4.5G", "4.5G Desteği"), ("5G", "5G"))
        if _flag(ag, label)
    )

    # 三个尺寸都填了才拼接
    dims = [_text(tasarim, "Boy"), _text(tasarim, "En"), _text(tasarim, "Kalınlık")]
    dimensions = DIMENSION_SEPARATOR.join(dims) if all(d.strip() for d in dims) else ""

    wifi_channels = _text(kablosuz, "Wi-Fi Kanalları")
    wlan = _join([_text(kablosuz, "Wi-Fi Özellikleri"), f"({wifi_channels})" if wifi_channels else ""], " ")

    # 先铺区块原值，再写派生键：同名时以派生值（如 Var/Yok 文本）为准
    return {
        "network": {
            **ag,
            "technology": network_technology,
            "announced": _text(temel_bilgiler, "Duyurulma Tarihi"),
            "status": "",
        },
        "body": {
            **tasarim,
            **dayaniklilik,
            "dimensions": dimensions,
            "weight": _text(tasarim, "Ağırlık"),
            "sim": _text(diger, "SIM"),
            "waterResistant": _text(dayaniklilik, "Suya Dayanıklılık Seviyesi"),
        },
        "display": {
            **ekran,
            "type": _text(ekran, "Ekran Teknolojisi"),
            "size": _text(ekran, "Ekran Boyutu"),
            "resolution": _text(ekran, "Ekran Çözünürlüğü"),
            "protection": _text(ekran, "Ekran Dayanıklılığı"),
        },
        "platform": {
            **temel_donanim,
            **os_values,
            "os": _join([_text(os_values, "İşletim Sistemi"), _text(os_values, "İşletim Sistemi Versiyonu")], " "),
            "chipset": _text(temel_donanim, "Yonga Seti (Chipset)"),
            "cpu": _text(temel_donanim, "Ana İşlemci (CPU)"),
            "gpu": _text(temel_donanim, "Grafik İşlemcisi (GPU)"),
            "cpuArchitecture": _text(temel_donanim, "İşlemci Mimarisi"),
            "cpuTechnology": _text(temel_donanim, "CPU Üretim Teknolojisi"),
            "cpuCores": _text(temel_donanim, "CPU Çekirdeği"),
        },
        "memory": {
            **ram_depolama,
            "cardSlot": var_yok(_flag(ram_depolama, "Hafıza Kartı Desteği")),
            "internal": _text(ram_depolama, "Dahili Depolama"),
            "ram": _text(ram_depolama, "Bellek (RAM)"),
        },
        "mainCamera": {
            **kamera,
            "triple": _text(kamera, "Kamera Çözünürlüğü"),
            "features": _text(kamera, "Kamera Özellikleri"),
            "video": _join([_text(kamera, "Video Kayıt Çözünürlüğü"), _text(kamera, "Video FPS Değeri")], " / "),
            "ois": _flag(kamera, "Optik Görüntü Sabitleyici (OIS)"),
            "flash": _text(kamera, "Flaş"),
            "aperture": _text(kamera, "Diyafram Açıklığı"),
            "focalLength": _text(kamera, "Odak Uzaklığı"),
            "sensorSize": _text(kamera, "Kamera Sensör Boyutu"),
        },
        "selfieCamera": {
            "single": _text(kamera, "Ön Kamera Çözünürlüğü"),
            "features": _text(kamera, "Ön Kamera Özellikleri"),
            "video": _join(
                [_text(kamera, "Ön Kamera Video Çözünürlüğü"), _text(kamera, "Ön Kamera FPS Değeri")], " / "
            ),
        },
        "sound": {
            **coklu_ortam,
            "loudspeaker": _text(coklu_ortam, "Hoparlör Özellikleri"),
            "jack": _text(coklu_ortam, "Ses Çıkışı"),
        },
        "comms": {
            **kablosuz,
            **diger,
            "wlan": wlan,
            "bluetooth": _join([_text(kablosuz, "Bluetooth Versiyonu"), _text(kablosuz, "Bluetooth Özellikleri")], " / "),
            "positioning": _text(kablosuz, "Navigasyon Özellikleri"),
            "nfc": var_yok(_flag(kablosuz, "NFC")),
            "infrared": var_yok(_flag(kablosuz, "Kızılötesi")),
            "radio": var_yok(_flag(coklu_ortam, "Radyo")),
            "usb": _join(
                [_text(diger, "USB Versiyonu"), _text(diger, "USB Bağlantı Tipi"), _text(diger, "USB Özellikleri")],
                " / ",
            ),
        },
        "features": {
            **sensor_servis,
            **dayaniklilik,
            "sensors": _text(sensor_servis, "Sensörler"),
            "fingerprint": _flag(sensor_servis, "Parmak izi Okuyucu"),
            "fingerprintFeatures": _text(sensor_servis, "Parmak izi Okuyucu Özellikleri"),
            "videoCall": _flag(sensor_servis, "Görüntülü Konuşma (Uygulama)"),
            "notificationLed": _flag(sensor_servis, "Bildirim Işığı (LED)"),
            "services": _text(sensor_servis, "Servis ve Uygulamalar"),
            "waterResistance": _flag(dayaniklilik, "Suya Dayanıklılık"),
            "waterResistanceLevel": _text(dayaniklilik, "Suya Dayanıklılık Seviyesi"),
            "dustResistance": _flag(dayaniklilik, "Toza Dayanıklılık"),
            "dustResistanceLevel": _text(dayaniklilik, "Toza Dayanıklılık Seviyesi"),
        },
        "battery": {
            **batarya,
            "type": _text(batarya, "Batarya Kapasitesi (Tipik)"),
            "charging": _text(batarya, "Şarj"),
            "fastCharging": _flag(batarya, "Hızlı Şarj"),
            "fastChargingPowerMax": _text(batarya, "Hızlı Şarj Gücü (Maks.)"),
            "wirelessCharging": _flag(batarya, "Kablosuz Şarj"),
            "replaceableBattery": _flag(batarya, "Değişir Batarya"),
        },
        "misc": {
            **temel_bilgiler,
            "colors": _text(tasarim, "Renk Seçenekleri"),
            "releaseYear": _text(temel_bilgiler, "Çıkış Yılı"),
            "series": _text(temel_bilgiler, "Seri"),
            "eu": dict(ab_etiket),
        },
        "sections": canonical,
    }
