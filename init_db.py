"""
初始化数据库: 删除旧库，写入默认账号、默认筛选设置和示例设备数据

默认账号（可用 .env 覆盖管理员账号）:
    管理员: admin@example.com / admin123
    普通用户: user1@example.com / password1
"""

import os

from catalog.admin_settings import save_settings
from catalog.auth import create_user
from catalog.spec_import import import_entries, load_entries
from catalog.util import env_str, get_path_for_read, get_path_for_write
from constants import DB_FILE

DB_FILE = get_path_for_write(DB_FILE)
SEED_FILE = get_path_for_read("seed_phones.json")

# 浏览页默认提供的筛选字段
DEFAULT_FILTER_FIELDS = [
    {"sectionId": "ramDepolama", "fieldKey": "bellek", "label": "Bellek (RAM)", "filterType": "range"},
    {"sectionId": "ramDepolama", "fieldKey": "dahiliDepolama", "label": "Dahili Depolama", "filterType": "range"},
    {"sectionId": "batarya", "fieldKey": "bataryaKapasitesi", "label": "Batarya Kapasitesi (Tipik)", "filterType": "range"},
    {"sectionId": "ekran", "fieldKey": "ekranBoyutu", "label": "Ekran Boyutu", "filterType": "range"},
    {"sectionId": "kablosuzBaglantilar", "fieldKey": "nfc", "label": "NFC", "type": "boolean", "filterType": "boolean"},
    {"sectionId": "isletimSistemi", "fieldKey": "isletimSistemi", "label": "İşletim Sistemi", "filterType": "text"},
]

# 如果数据库文件已存在，先删除，确保每次运行都是全新的
if os.path.exists(DB_FILE):
    os.remove(DB_FILE)

# ---------------------------------------------------------
# 1. 默认账号
# ---------------------------------------------------------
admin = create_user(
    env_str("CATALOG_ADMIN_EMAIL", "admin@example.com"),
    env_str("CATALOG_ADMIN_PASSWORD", "admin123"),
    "Yönetici",
    DB_FILE,
    role="admin",
)
create_user("user1@example.com", "password1", "Kullanıcı 1", DB_FILE)
print("成功创建 2 个默认账号。")

# ---------------------------------------------------------
# 2. 默认站点设置（版本 0 -> 1）
# ---------------------------------------------------------
_, version = save_settings({"filterFields": DEFAULT_FILTER_FIELDS}, 0, DB_FILE)
print(f"站点设置已写入，版本 {version}。")

# ---------------------------------------------------------
# 3. 示例设备数据
# ---------------------------------------------------------
try:
    result = import_entries(load_entries(SEED_FILE), admin, DB_FILE)
    print(f"成功导入 {len(result['imported'])} 条设备数据。")
    for err in result["errors"]:
        print(f"导入失败: {err}")
except FileNotFoundError:
    print("未找到 seed_phones.json，跳过设备数据导入。")

print(f"数据库初始化完成：{DB_FILE}")
