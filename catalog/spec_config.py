"""
文件目的: 规格区块/字段的静态注册表

功能描述:
    定义内置的规格区块（Ekran、Batarya、Kamera ...）及其字段，
    并提供 label -> key 的转换规则（label_to_key）。
    同一个 label 永远得到同一个 key，导入旧数据时也靠它把自由文本标签映射回已知字段。

字段结构（dict）:
    - key: 存储用字段名（由 label 推导）
    - label: 页面展示名
    - type: text / textarea / boolean
    - isCard: 是否默认显示在摘要卡片上（可选）
    - numeric: 数值筛选规则（可选），{unit, ceiling, pick, memory}
"""

import re
from typing import Any

FIELD_TYPES = ("text", "textarea", "boolean")

# 土耳其语字符 -> ASCII
_TURKISH_TO_ASCII = str.maketrans({
    "Ç": "C", "ç": "c",
    "Ğ": "G", "ğ": "g",
    "İ": "I", "ı": "i",
    "Ö": "O", "ö": "o",
    "Ş": "S", "ş": "s",
    "Ü": "U", "ü": "u",
})

SENTINEL_KEY = "value"


def turkish_to_ascii(text: str) -> str:
    return (text or "").translate(_TURKISH_TO_ASCII)


def label_to_key(label: str) -> str:
    """
    把展示名转换成 camelCase 的字段 key

    规则:
        1. 土耳其语字符转 ASCII
        2. 去掉括号内容，例如 "Bellek (RAM)" -> "Bellek"
        3. 非字母数字一律视为分隔符，转小写后只保留 [a-z0-9] 片段
        4. camelCase 拼接；以数字开头时加前缀 "n"
        5. 没有任何片段时返回 "value"

    例如:
        "Batarya Kapasitesi (Tipik)" -> "bataryaKapasitesi"
        "5G" -> "n5g"
    """
    cleaned = turkish_to_ascii(label or "")
    cleaned = re.sub(r"\([^)]*\)", " ", cleaned)
    cleaned = re.sub(r"[\W_]+", " ", cleaned).strip().lower()
    parts = re.findall(r"[a-z0-9]+", cleaned)
    if not parts:
        return SENTINEL_KEY
    first, rest = parts[0], parts[1:]
    camel = first + "".join(p[0].upper() + p[1:] for p in rest)
    return f"n{camel}" if camel[0].isdigit() else camel


_LONG_TEXT = re.compile(
    r"(Özellikleri|Seçenekleri|Sensörler|Servis|Ağır Çekim)",
    re.IGNORECASE,
)


def _numeric(unit: str, pick: str = "first", ceiling: int | None = None, memory: bool = False) -> dict:
    return {"unit": unit, "pick": pick, "ceiling": ceiling, "memory": memory}


RAM_RULE = _numeric("GB", "maxUnder", 128, memory=True)
STORAGE_RULE = _numeric("GB", "maxUnder", 4096)
SCREEN_RULE = _numeric("inç", "first")
BATTERY_RULE = _numeric("mAh", "maxUnder", 20000)
CAMERA_RULE = _numeric("MP", "maxUnder", 300)
CORES_RULE = _numeric("çekirdek", "maxUnder", 32)
SCORE_RULE = _numeric("puan", "max")


def f(label: str, type: str | None = None, is_card: bool = False, numeric: dict | None = None) -> dict[str, Any]:
    field = {
        "key": label_to_key(label),
        "label": label,
        "type": type or ("textarea" if _LONG_TEXT.search(label) else "text"),
    }
    if is_card:
        field["isCard"] = True
    if numeric:
        field["numeric"] = dict(numeric)
    return field


def c(label: str, is_card: bool = False) -> dict[str, Any]:
    return f(label, "boolean", is_card)


SECTION_CONFIG: list[dict[str, Any]] = [
    {
        "id": "ekran",
        "tabLabel": "Ekran",
        "title": "Ekran",
        "fields": [
            f("Ekran Boyutu", "text", True, SCREEN_RULE),
            f("Ekran Teknolojisi"),
            f("Ekran Çözünürlüğü"),
            f("Ekran Çözünürlüğü Standardı"),
            f("Piksel Yoğunluğu"),
            f("Ekran Yenileme Hızı"),
            f("Ekran Oranı (Aspect Ratio)"),
            f("Ekran Alanı"),
            f("Ekran Özellikleri"),
            f("Ekran Dayanıklılığı"),
            f("Renk Sayısı"),
            f("Ekran / Gövde Oranı"),
        ],
    },
    {
        "id": "batarya",
        "tabLabel": "Batarya",
        "title": "Batarya",
        "fields": [
            f("Batarya Kapasitesi (Tipik)", "text", True, BATTERY_RULE),
            f("Şarj"),
            c("Hızlı Şarj"),
            f("Hızlı Şarj Gücü (Maks.)"),
            f("Hızlı Şarj Özellikleri"),
            f("Şarj Süresi (Üretici Verisi)"),
            c("Kablosuz Şarj"),
            f("Kablosuz Şarj Özellikleri"),
            c("Değişir Batarya"),
            f("Batarya Özellikleri"),
        ],
    },
    {
        "id": "kamera",
        "tabLabel": "Kamera",
        "title": "Kamera",
        "fields": [
            f("Kamera Çözünürlüğü", "text", True, CAMERA_RULE),
            c("Optik Görüntü Sabitleyici (OIS)"),
            f("Kamera Özellikleri"),
            f("Flaş"),
            f("Diyafram Açıklığı"),
            f("Odak Uzaklığı"),
            f("Kamera Sensör Boyutu"),
            f("Video Kayıt Çözünürlüğü"),
            f("Video FPS Değeri"),
            f("Video Kayıt Özellikleri"),
            f("Video Kayıt Seçenekleri"),
            f("Ağır Çekim Kayıt Seçenekleri"),
            c("İkinci Arka Kamera"),
            f("İkinci Arka Kamera Çözünürlüğü", numeric=CAMERA_RULE),
            f("İkinci Arka Kamera Diyafram"),
            f("İkinci Arka Kamera Özellikleri"),
            c("Üçüncü Arka Kamera"),
            f("Üçüncü Arka Kamera Çözünürlüğü", numeric=CAMERA_RULE),
            f("Üçüncü Arka Kamera Diyafram"),
            f("Üçüncü Arka Kamera Özellikleri"),
            f("Ön Kamera Çözünürlüğü", numeric=CAMERA_RULE),
            f("Ön Kamera Video Çözünürlüğü"),
            f("Ön Kamera FPS Değeri"),
            f("Ön Kamera Özellikleri"),
        ],
    },
    {
        "id": "temelDonanim",
        "tabLabel": "Temel Donanım",
        "title": "Temel Donanım",
        "fields": [
            f("Yonga Seti (Chipset)", "text", True),
            f("CPU Frekansı"),
            f("CPU Çekirdeği", numeric=CORES_RULE),
            f("Ana İşlemci (CPU)"),
            f("1. Yardımcı İşlemci"),
            f("İşlemci Mimarisi"),
            f("Grafik İşlemcisi (GPU)"),
            f("GPU Frekansı"),
            f("CPU Üretim Teknolojisi"),
            f("Geekbench 6 Single-Core Puanı", numeric=SCORE_RULE),
            f("Geekbench 6 Multi-Core Puanı", numeric=SCORE_RULE),
        ],
    },
    {
        "id": "ramDepolama",
        "tabLabel": "RAM/Depolama",
        "title": "RAM / Depolama",
        "fields": [
            f("Bellek (RAM)", "text", True, RAM_RULE),
            f("RAM Tipi"),
            f("Dahili Depolama", numeric=STORAGE_RULE),
            f("Dahili Depolama Biçimi"),
            c("Hafıza Kartı Desteği"),
            f("Diğer Bellek (RAM) Seçenekleri"),
            f("Diğer Hafıza Seçenekleri"),
        ],
    },
    {
        "id": "tasarim",
        "tabLabel": "Tasarım",
        "title": "Tasarım",
        "fields": [
            f("Boy"),
            f("En"),
            f("Kalınlık"),
            f("Ağırlık"),
            f("Ağırlık Seçenekleri"),
            f("Renk Seçenekleri", "text", True),
            f("Gövde Malzemesi (Çerçeve)"),
        ],
    },
    {
        "id": "agBaglantilari",
        "tabLabel": "Ağ Bağlantıları",
        "title": "Ağ Bağlantıları",
        "fields": [
            c("2G"),
            c("3G"),
            c("4G"),
            f("4G Özellikleri"),
            c("4.5G Desteği"),
            c("5G", True),
        ],
    },
    {
        "id": "isletimSistemi",
        "tabLabel": "İşletim Sistemi",
        "title": "İşletim Sistemi",
        "fields": [
            f("İşletim Sistemi"),
            f("İşletim Sistemi Versiyonu", "text", True),
            f("Kullanıcı Arayüzü"),
            f("Lansman Arayüz Versiyonu"),
        ],
    },
    {
        "id": "kablosuzBaglantilar",
        "tabLabel": "Kablosuz Bağlantılar",
        "title": "Kablosuz Bağlantılar",
        "fields": [
            f("Wi-Fi Kanalları", "text", True),
            f("Wi-Fi Özellikleri"),
            c("NFC"),
            f("Bluetooth Versiyonu"),
            f("Bluetooth Özellikleri"),
            c("Kızılötesi"),
            f("Navigasyon Özellikleri"),
        ],
    },
    {
        "id": "cokluOrtam",
        "tabLabel": "Çoklu Ortam",
        "title": "Çoklu Ortam",
        "fields": [
            c("Radyo"),
            f("Hoparlör Özellikleri", "text", True),
            f("Ses Çıkışı"),
        ],
    },
    {
        "id": "dayaniklilik",
        "tabLabel": "Dayanıklılık",
        "title": "Dayanıklılık Özellikleri",
        "fields": [
            c("Suya Dayanıklılık"),
            f("Suya Dayanıklılık Seviyesi", "text", True),
            c("Toza Dayanıklılık"),
            f("Toza Dayanıklılık Seviyesi"),
        ],
    },
    {
        "id": "sensorServis",
        "tabLabel": "Sensörler ve Servisler",
        "title": "Sensörler ve Servisler",
        "fields": [
            c("Görüntülü Konuşma (Uygulama)"),
            f("Sensörler"),
            c("Parmak izi Okuyucu"),
            f("Parmak izi Okuyucu Özellikleri", "text", True),
            c("Bildirim Işığı (LED)"),
            f("Servis ve Uygulamalar"),
        ],
    },
    {
        "id": "digerBaglantilar",
        "tabLabel": "Diğer Bağlantılar",
        "title": "Diğer Bağlantılar",
        "fields": [
            f("USB Versiyonu"),
            f("USB Bağlantı Tipi", "text", True),
            f("USB Özellikleri"),
            f("Hat Sayısı"),
            f("SIM"),
        ],
    },
    {
        "id": "abEtiket",
        "tabLabel": "AB Etiketi",
        "title": "AB Ürün Kayıt ve Enerji Etiketi",
        "fields": [
            f("Enerji Sınıfı"),
            f("Şarj Sonrası Pil Süresi", "text", True),
            f("Düşme Direnci Sınıfı"),
            f("Onarılabilirlik Sınıfı"),
            f("Şarj Döngü Sayısı (AB)"),
            f("Suya ya da Toza Direnç Sınıfı"),
        ],
    },
    {
        "id": "temelBilgiler",
        "tabLabel": "Temel Bilgiler",
        "title": "Temel Bilgiler",
        "fields": [
            f("Çıkış Yılı"),
            f("Duyurulma Tarihi", "text", True),
            f("Seri"),
        ],
    },
]

BUILTIN_SECTION_IDS = [section["id"] for section in SECTION_CONFIG]


def get_builtin_section(section_id: str) -> dict[str, Any] | None:
    for section in SECTION_CONFIG:
        if section["id"] == section_id:
            return section
    return None


def builtin_numeric_rule(section_id: str, field_key: str) -> dict | None:
    section = get_builtin_section(section_id)
    if not section:
        return None
    for field in section["fields"]:
        if field["key"] == field_key:
            return field.get("numeric")
    return None


TRUE_WORDS = ("var", "evet", "true", "1", "yes")
FALSE_WORDS = ("yok", "hayır", "hayir", "false", "0", "no")


def to_bool(value: Any) -> bool:
    """布尔字段的宽松解析：兼容 Var/Yok、Evet/Hayır、true/false、1/0。"""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value == 1
    text = str(value).strip().lower()
    if text in TRUE_WORDS:
        return True
    if text in FALSE_WORDS:
        return False
    return bool(text)


def field_default(field: dict[str, Any]) -> Any:
    return False if field.get("type") == "boolean" else ""


def normalize_field(field: Any) -> dict[str, Any] | None:
    """把管理员提交的字段定义规范化；缺 label 的视为无效。"""
    if not isinstance(field, dict):
        return None
    label = str(field.get("label", "")).strip()
    if not label:
        return None
    key = str(field.get("key", "")).strip() or label_to_key(label)
    ftype = str(field.get("type", "text")).strip()
    # 兼容旧数据里的 checkbox
    if ftype == "checkbox":
        ftype = "boolean"
    if ftype not in FIELD_TYPES:
        ftype = "text"
    out = {"key": key, "label": label, "type": ftype}
    if field.get("isCard"):
        out["isCard"] = True
    if isinstance(field.get("numeric"), dict):
        out["numeric"] = dict(field["numeric"])
    return out
