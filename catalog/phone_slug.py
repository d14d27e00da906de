import re
import unicodedata

_TURKISH_MAP = str.maketrans({
    "ç": "c", "Ç": "c",
    "ğ": "g", "Ğ": "g",
    "ı": "i", "İ": "i",
    "ö": "o", "Ö": "o",
    "ş": "s", "Ş": "s",
    "ü": "u", "Ü": "u",
})


def slugify(value: str) -> str:
    """'Xiaomi Redmi Note 13 Pro+' -> 'xiaomi-redmi-note-13-pro'"""
    text = (value or "").translate(_TURKISH_MAP).lower()
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def build_phone_slug(brand: str | None, title: str | None) -> str:
    return slugify(f"{brand or ''} {title or ''}".strip())
