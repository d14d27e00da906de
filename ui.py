"""
文件目的: Gradio 界面

功能描述:
    main_ui  (挂载在 /home，公开)
        - 🔍 Filtre: 类别 / 品牌 / 搜索 / 价格 / 排序 + 动态字段筛选，点“Uygula”后才出结果
        - ⚖️ Karşılaştır: 两台设备按区块逐字段对比，生成分享用的 a-vs-b
        - ⚙️ Ayarlar: 只读查看站点设置与生效的区块结构
    admin_ui (挂载在 /panel，需管理员账号登录)
        - 待审核列表，通过 / 拒绝
        - JSON 批量导入

读取走 local_cache（按 TTL 过期），写操作不主动清缓存。
"""

import html
import json

import gradio as gr

from catalog import phones
from catalog.admin_settings import (
    build_effective_schema,
    build_effective_sections,
    card_fields_of,
    card_sections,
    filter_fields_for,
    load_effective_settings,
    load_settings,
)
from catalog.auth import check_credentials, get_profile, profile_by_email
from catalog.catalog_filter import (
    SORT_OPTIONS,
    collect_brands,
    collect_categories,
    default_criteria,
    filter_items,
    filter_mode,
    format_filter_value,
    is_all,
    item_field_value,
    numeric_stats,
    unit_label,
)
from catalog.compare import build_pair, compare, parse_pair
from catalog.errors import CatalogError, NotFound
from catalog.kv_store import get_db_file
from catalog.local_cache import read_cache, write_cache
from catalog.spec_import import import_entries, load_entries
from constants import ALL_SENTINEL, DETAIL_CACHE_TTL, MAX_FILTER_SLOTS, SUMMARY_CACHE_TTL

SORT_LABELS = {
    "latest": "En yeni",
    "priceAsc": "Fiyat (artan)",
    "priceDesc": "Fiyat (azalan)",
    "name": "İsim",
}

BOOL_CHOICES = [("Tümü", "all"), ("Var", "true"), ("Yok", "false")]

EMPTY_RESULT_HTML = "<div style='text-align: center; padding: 50px; color: #999;'>Filtreleri seçip “Uygula”ya basın</div>"


# ==================== 数据读取（带缓存） ====================

def _load_summary() -> list[dict]:
    cached = read_cache("phones:summary")
    if cached is not None:
        return cached
    items = phones.summary(get_db_file())
    write_cache("phones:summary", items, SUMMARY_CACHE_TTL)
    return items


def _load_settings() -> dict:
    cached = read_cache("site:settings")
    if cached is not None:
        return cached
    settings = load_effective_settings(get_db_file())
    write_cache("site:settings", settings, SUMMARY_CACHE_TTL)
    return settings


def _load_phone_by_slug(slug: str) -> dict | None:
    key = f"phone:slug:{slug}"
    cached = read_cache(key)
    if cached is not None:
        return cached
    try:
        phone = phones.get_by_slug(slug, get_db_file())
    except NotFound:
        return None
    write_cache(key, phone, DETAIL_CACHE_TTL)
    return phone


def _active_filter_fields(settings: dict, category) -> list[dict]:
    fields = filter_fields_for(settings, None if is_all(category) else category)
    return fields[:MAX_FILTER_SLOTS]


# ==================== 渲染 ====================

def card_lines(item: dict, settings: dict) -> list[tuple[str, str, str]]:
    """
    一张摘要卡片上的规格行

    功能说明:
        按记录所属类别取卡片区块，每个区块取卡片字段（覆盖列表 > 默认标记 > 第一个字段），
        所以每个可见区块至少出一行；没有值时显示占位

    返回值:
        list[tuple]: (区块标题, 字段名, 显示文本)
    """
    values = item.get("cards") or {}
    lines = []
    for section in card_sections(settings, item.get("category") or None):
        for field in card_fields_of(section, settings):
            key = f"{section['id']}:{field['key']}"
            value = values[key] if key in values else item_field_value(item, section["id"], field["key"])
            cell = {"sectionId": section["id"], "fieldKey": field["key"], "label": field["label"], "type": field.get("type")}
            lines.append((section["title"], field["label"], format_filter_value(value, cell)))
    return lines


def render_results_html(items: list[dict], settings: dict) -> str:
    """
    筛选结果的卡片列表

    输入参数:
        items: 摘要记录（phones.summary 的输出）
        settings: 当前生效的站点设置，决定每张卡片显示哪些区块和字段
    """
    if not items:
        return "<div style='text-align: center; padding: 50px; color: #999;'>Sonuç bulunamadı</div>"

    cards = []
    for item in items:
        first = (item.get("images") or [None])[0]
        image = first.get("src", "") if isinstance(first, dict) else ""
        image_tag = (
            f"<img src='{html.escape(image)}' style='width:100%;height:140px;object-fit:contain;' />"
            if image
            else "<div style='height:140px;background:#f5f5f5;display:flex;align-items:center;justify-content:center;color:#999;'>Görsel yok</div>"
        )
        specs = "".join(
            f"<div title='{html.escape(section_title)}'><b>{html.escape(label)}</b>: {html.escape(text)}</div>"
            for section_title, label, text in card_lines(item, settings)
        )
        cards.append(
            f"""
            <div style='border:1px solid #eee;border-radius:10px;padding:12px;width:220px;'>
                {image_tag}
                <div style='color:#718096;'>🏷️ {html.escape(str(item.get('category', '')))}</div>
                <div style='font-weight:bold;'>{html.escape(str(item.get('brand', '')))} {html.escape(str(item.get('title', '')))}</div>
                <div>💰 {html.escape(str(item.get('price') or '-'))}</div>
                {specs}
                <div style='color:#999;font-size:12px;'>🔗 {html.escape(item.get('slug', ''))}</div>
            </div>
            """
        )
    header = f"<div style='padding: 8px 0;'><b>{len(items)} telefon bulundu</b></div>"
    return header + "<div style='display:flex;flex-wrap:wrap;gap:12px;'>" + "".join(cards) + "</div>"


def render_comparison_html(phone_a: dict, phone_b: dict, blocks: list[dict]) -> str:
    if not blocks:
        return "<div style='padding: 12px; color: #666;'>Karşılaştırılacak veri yok</div>"

    name_a = html.escape(f"{phone_a.get('brand', '')} {phone_a.get('title', '')}")
    name_b = html.escape(f"{phone_b.get('brand', '')} {phone_b.get('title', '')}")
    parts = []
    for block in blocks:
        rows_html = "".join(
            f"""
            <tr>
                <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(row['label'])}</td>
                <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(row['valueA'])}</td>
                <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(row['valueB'])}</td>
            </tr>
            """
            for row in block["rows"]
        )
        parts.append(
            f"<div style='padding: 8px 0;'><b>{html.escape(block['sectionTitle'])}</b></div>"
            "<table style='width: 100%; border-collapse: collapse;'>"
            "<thead><tr>"
            "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Özellik</th>"
            f"<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>{name_a}</th>"
            f"<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>{name_b}</th>"
            "</tr></thead>"
            f"<tbody>{rows_html}</tbody>"
            "</table>"
        )
    return "".join(parts)


def render_schema_html(schema: list[dict]) -> str:
    rows_html = "".join(
        f"""
        <tr>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(s['id'])}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(s['title'])}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{len(s.get('fields') or [])}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{'✔' if s['inForm'] else ''}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{'✔' if s['inCard'] else ''}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(', '.join(s['cardFieldKeys']))}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(', '.join(f['fieldKey'] + ' (' + f['filterType'] + ')' for f in s['filterFields']))}</td>
        </tr>
        """
        for s in schema
    )
    return (
        "<table style='width: 100%; border-collapse: collapse;'>"
        "<thead><tr>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>ID</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Başlık</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Alan</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Form</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Kart</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Kart alanları</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Filtreler</th>"
        "</tr></thead>"
        f"<tbody>{rows_html}</tbody>"
        "</table>"
    )


# ==================== 筛选页 ====================

def _slot_updates(category):
    """
    动态筛选槽位的可见性与标签

    每个槽位 4 个组件：布尔下拉 / 文本框 / 最小值 / 最大值，
    按字段的筛选方式只显示其中一种
    """
    settings = _load_settings()
    fields = _active_filter_fields(settings, category)
    stats = numeric_stats(_load_summary(), fields)
    updates = []
    for i in range(MAX_FILTER_SLOTS):
        if i >= len(fields):
            updates.extend([gr.update(visible=False, value=None)] * 4)
            continue
        field = fields[i]
        mode = filter_mode(field)
        unit = unit_label(field)
        label = f"{field['label']} ({unit})" if unit else field["label"]
        bounds = stats.get(f"{field['sectionId']}:{field['fieldKey']}") or {}
        updates.append(gr.update(visible=mode == "boolean", label=label, value="all"))
        updates.append(gr.update(visible=mode == "text", label=label, value=""))
        updates.append(gr.update(visible=mode == "range", label=f"{label} min ≥ {bounds.get('min', '-')}", value=None))
        updates.append(gr.update(visible=mode == "range", label=f"{label} max ≤ {bounds.get('max', '-')}", value=None))
    return updates


def build_criteria(category, brand, search, min_price, max_price, sort_by, fields, slot_values) -> dict:
    """界面输入 -> filter_items 用的条件字典"""
    criteria = default_criteria()
    criteria.update({
        "search": search or "",
        "category": category or ALL_SENTINEL,
        "brand": brand or ALL_SENTINEL,
        "min_price": "" if min_price is None else min_price,
        "max_price": "" if max_price is None else max_price,
        "sort_by": sort_by or "latest",
    })
    for i, field in enumerate(fields):
        bool_value, text_value, low, high = slot_values[i * 4: i * 4 + 4]
        key = f"{field['sectionId']}:{field['fieldKey']}"
        mode = filter_mode(field)
        if mode == "boolean":
            criteria["field_filters"][key] = bool_value or "all"
        elif mode == "text":
            criteria["field_filters"][key] = text_value or ""
        elif low is not None or high is not None:
            criteria["range_filters"][key] = {"min": low, "max": high}
    return criteria


def apply_filters(category, brand, search, min_price, max_price, sort_by, *slot_values):
    items = _load_summary()
    settings = _load_settings()
    fields = _active_filter_fields(settings, category)
    criteria = build_criteria(category, brand, search, min_price, max_price, sort_by, fields, slot_values)
    result = filter_items(items, criteria, fields, applied=True, stats=numeric_stats(items, fields))
    return render_results_html(result, settings), f"✅ {len(result)} sonuç"


def reset_filters(category):
    return (EMPTY_RESULT_HTML, "", ALL_SENTINEL, "", None, None, "latest", *_slot_updates(category))


def _init_catalog():
    items = _load_summary()
    settings = _load_settings()
    categories = [ALL_SENTINEL] + collect_categories(items, settings.get("categories") or [])
    brands = [ALL_SENTINEL] + collect_brands(items)
    return (
        gr.update(choices=categories, value=ALL_SENTINEL),
        gr.update(choices=brands, value=ALL_SENTINEL),
        EMPTY_RESULT_HTML,
        *_slot_updates(ALL_SENTINEL),
    )


# ==================== 对比页 ====================

def _phone_choices():
    return [(f"{i['brand']} {i['title']}", i["slug"]) for i in _load_summary()]


def _section_choices():
    return [(s["title"], s["id"]) for s in build_effective_sections(_load_settings())]


def run_compare(slug_a, slug_b, section_ids):
    if not slug_a or not slug_b:
        return "❌ İki telefon seçin", "", ""
    phone_a = _load_phone_by_slug(slug_a)
    phone_b = _load_phone_by_slug(slug_b)
    if not phone_a or not phone_b:
        return "❌ Telefon bulunamadı", "", ""
    sections = build_effective_sections(_load_settings())
    selected = section_ids or [s["id"] for s in sections]
    blocks = compare(phone_a, phone_b, selected, sections)
    return "✅ Karşılaştırma hazır", render_comparison_html(phone_a, phone_b, blocks), build_pair(slug_a, slug_b)


def load_pair(pair, section_ids):
    parsed = parse_pair((pair or "").strip())
    if not parsed:
        return "❌ Bağlantı biçimi: marka-model-vs-marka-model", "", pair, gr.update(), gr.update()
    msg, table, share = run_compare(parsed[0], parsed[1], section_ids)
    return msg, table, share, gr.update(value=parsed[0]), gr.update(value=parsed[1])


def _init_compare():
    phones_ = _phone_choices()
    sections = _section_choices()
    return (
        gr.update(choices=phones_, value=None),
        gr.update(choices=phones_, value=None),
        gr.update(choices=sections, value=[value for _, value in sections]),
    )


# ==================== 设置页 ====================

def show_settings():
    DB_FILE = get_db_file()
    raw, version = load_settings(DB_FILE)
    schema = build_effective_schema(load_effective_settings(DB_FILE))
    return {"version": version, "settings": raw}, render_schema_html(schema)


# ==================== 管理面板 ====================

def authenticate(username, password):
    """
    /panel 的登录校验

    输入参数:
        username (str): 邮箱
        password (str): 密码

    返回值:
        bool: 凭据正确且角色为 admin 时为 True
    """
    if not username or not password:
        return False
    DB_FILE = get_db_file()
    credential = check_credentials(username, password, DB_FILE)
    if not credential:
        return False
    profile = get_profile(credential["userId"], DB_FILE)
    return bool(profile and profile.get("role") == "admin")


def _admin_profile(request: gr.Request | None) -> dict | None:
    # 直接调用（非界面触发）时 request 为 None
    if not request:
        return None
    username = getattr(request, "username", None)
    if not username:
        return None
    profile = profile_by_email(username, get_db_file())
    return profile if profile and profile.get("role") == "admin" else None


def show_welcome(request: gr.Request):
    username = getattr(request, "username", None) or "misafir"
    return f"### 👋 Hoş geldiniz, {username}!"


def _render_pending_html():
    pending = phones.list_pending(get_db_file())
    if not pending:
        return "<div style='padding: 12px; color: #666;'>Onay bekleyen telefon yok</div>"

    rows_html = "".join(
        f"""
        <tr>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(p['id'])}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(p.get('brand', ''))}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(p.get('title', ''))}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(p.get('category', ''))}</td>
            <td style='border-bottom:1px solid #eee;padding:6px;'>{html.escape(p.get('submittedAt', ''))}</td>
        </tr>
        """
        for p in pending
    )
    return (
        "<table style='width: 100%; border-collapse: collapse;'>"
        "<thead><tr>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>ID</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Marka</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Model</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Kategori</th>"
        "<th style='text-align:left;border-bottom:1px solid #ddd;padding:6px;'>Gönderim</th>"
        "</tr></thead>"
        f"<tbody>{rows_html}</tbody>"
        "</table>"
    )


def admin_review(phone_id, action, request: gr.Request | None):
    admin = _admin_profile(request)
    if not admin:
        return "❌ Yalnızca yöneticiler", _render_pending_html(), phone_id
    phone_id = (phone_id or "").strip()
    if not phone_id:
        return "❌ Telefon ID girin", _render_pending_html(), phone_id
    try:
        phone = phones.review_phone(phone_id, action, admin, get_db_file())
    except CatalogError as exc:
        return "❌ " + exc.message, _render_pending_html(), phone_id
    return f"✅ {phone['brand']} {phone['title']}: {phone['status']}", _render_pending_html(), ""


def admin_approve(phone_id, request: gr.Request):
    return admin_review(phone_id, "approve", request)


def admin_reject(phone_id, request: gr.Request):
    return admin_review(phone_id, "reject", request)


def admin_import(file_path, request: gr.Request):
    admin = _admin_profile(request)
    if not admin:
        return "❌ Yalnızca yöneticiler"
    if not file_path:
        return "❌ JSON dosyası seçin"
    try:
        entries = load_entries(file_path)
    except (OSError, json.JSONDecodeError) as exc:
        return f"❌ JSON okunamadı: {exc}"
    result = import_entries(entries, admin, get_db_file())
    lines = [f"✅ {len(result['imported'])} kayıt içe aktarıldı"]
    lines.extend(f"❌ {err}" for err in result["errors"])
    return "\n".join(lines)


# ==================== Gradio 界面构建 ====================

with gr.Blocks(title="Telefon Kataloğu") as main_ui:
    gr.Markdown(value="# 📱 Telefon Kataloğu")

    # ========== Tab 1: 筛选 ==========
    with gr.Tab(label="🔍 Filtre"):
        with gr.Row():
            with gr.Column(scale=1):
                f_category = gr.Dropdown(choices=[ALL_SENTINEL], value=ALL_SENTINEL, label="Kategori")
                f_brand = gr.Dropdown(choices=[ALL_SENTINEL], value=ALL_SENTINEL, label="Marka")
                f_search = gr.Textbox(label="Ara", placeholder="Marka veya model")
                with gr.Row():
                    f_min_price = gr.Number(label="Min fiyat", value=None)
                    f_max_price = gr.Number(label="Max fiyat", value=None)
                f_sort = gr.Dropdown(
                    choices=[(SORT_LABELS[s], s) for s in SORT_OPTIONS],
                    value="latest",
                    label="Sıralama",
                )

                # 动态字段槽位（先创建占位，按类别显示/隐藏）
                slot_components = []
                for _ in range(MAX_FILTER_SLOTS):
                    slot_components.append(gr.Dropdown(choices=BOOL_CHOICES, value="all", visible=False))
                    slot_components.append(gr.Textbox(visible=False))
                    slot_components.append(gr.Number(value=None, visible=False))
                    slot_components.append(gr.Number(value=None, visible=False))

                with gr.Row():
                    f_apply = gr.Button(value="Uygula", variant="primary")
                    f_reset = gr.Button(value="Sıfırla", variant="secondary")
            with gr.Column(scale=3):
                f_status = gr.Markdown()
                f_results = gr.HTML(value=EMPTY_RESULT_HTML)

        f_apply.click(
            apply_filters,
            inputs=[f_category, f_brand, f_search, f_min_price, f_max_price, f_sort, *slot_components],
            outputs=[f_results, f_status],
        )
        f_reset.click(
            reset_filters,
            inputs=[f_category],
            outputs=[f_results, f_status, f_brand, f_search, f_min_price, f_max_price, f_sort, *slot_components],
        )
        f_category.change(_slot_updates, inputs=[f_category], outputs=slot_components)

    # ========== Tab 2: 对比 ==========
    with gr.Tab(label="⚖️ Karşılaştır"):
        with gr.Row():
            c_phone_a = gr.Dropdown(choices=[], label="1. telefon")
            c_phone_b = gr.Dropdown(choices=[], label="2. telefon")
        c_sections = gr.CheckboxGroup(choices=[], label="Bölümler")
        with gr.Row():
            c_btn = gr.Button(value="Karşılaştır", variant="primary")
            c_pair = gr.Textbox(label="Paylaşım bağlantısı", placeholder="samsung-galaxy-s24-vs-apple-iphone-15")
            c_pair_btn = gr.Button(value="Bağlantıdan yükle", variant="secondary")
        c_msg = gr.Markdown()
        c_table = gr.HTML()

        c_btn.click(run_compare, inputs=[c_phone_a, c_phone_b, c_sections], outputs=[c_msg, c_table, c_pair])
        c_pair_btn.click(
            load_pair,
            inputs=[c_pair, c_sections],
            outputs=[c_msg, c_table, c_pair, c_phone_a, c_phone_b],
        )

    # ========== Tab 3: 设置查看 ==========
    with gr.Tab(label="⚙️ Ayarlar"):
        s_refresh = gr.Button("🔄 Yenile")
        s_json = gr.JSON(label="Site ayarları")
        s_schema = gr.HTML()
        s_refresh.click(show_settings, outputs=[s_json, s_schema])

    main_ui.load(_init_catalog, None, [f_category, f_brand, f_results, *slot_components])
    main_ui.load(_init_compare, None, [c_phone_a, c_phone_b, c_sections])
    main_ui.load(show_settings, None, [s_json, s_schema])


with gr.Blocks(title="Telefon Kataloğu - Yönetim") as admin_ui:
    gr.Markdown(value="# 🛠️ Yönetim Paneli")
    with gr.Row():
        with gr.Column(scale=4):
            welcome_msg = gr.Markdown()
        with gr.Column(scale=1):
            gr.Button("🚪 Çıkış", link="logout", variant="secondary")
    admin_ui.load(show_welcome, None, welcome_msg)

    with gr.Tab(label="✅ Onay bekleyenler"):
        with gr.Row():
            with gr.Column(scale=1):
                a_phone_id = gr.Textbox(label="Telefon ID")
                with gr.Row():
                    a_approve = gr.Button(value="Onayla", variant="primary")
                    a_reject = gr.Button(value="Reddet", variant="stop")
                a_msg = gr.Textbox(label="Sonuç", lines=2)
            with gr.Column(scale=2):
                a_pending = gr.HTML()

        a_approve.click(
            admin_approve,
            inputs=[a_phone_id],
            outputs=[a_msg, a_pending, a_phone_id],
        )
        a_reject.click(
            admin_reject,
            inputs=[a_phone_id],
            outputs=[a_msg, a_pending, a_phone_id],
        )

    with gr.Tab(label="📥 JSON içe aktar"):
        i_file = gr.File(label="JSON dosyası", file_types=[".json"], type="filepath")
        i_btn = gr.Button(value="İçe aktar", variant="primary")
        i_msg = gr.Textbox(label="Sonuç", lines=6)
        i_btn.click(admin_import, inputs=[i_file], outputs=[i_msg])

    admin_ui.load(_render_pending_html, None, a_pending)
