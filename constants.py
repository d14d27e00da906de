from catalog.util import env_int, env_str

# ==================== 运行配置（可由 .env 覆盖） ====================
DB_FILE = env_str("CATALOG_DB_FILE", "catalog.db")
HOST = env_str("CATALOG_HOST", "127.0.0.1")
PORT = env_int("CATALOG_PORT", 7861)
LOG_LEVEL = env_str("CATALOG_LOG_LEVEL", "INFO")
SESSION_TTL_HOURS = env_int("CATALOG_SESSION_TTL_HOURS", 168)

# 所有 JSON 接口共用的路径前缀
API_PREFIX = "/make-server"

# Gradio 界面挂载路径
MAIN_PATH = "/home"

# ==================== 目录默认值 ====================
# 说明:
# - DEFAULT_CATEGORIES 的第一个是“默认类别”，未配置适用类别的区块都会落到它上面
# - ALL_SENTINEL 是筛选下拉框里的“全部”，选中时跳过该条件
DEFAULT_CATEGORIES = ["Telefon"]
ALL_SENTINEL = "Tümü"

# 布尔值的两种展示文字
BOOL_TRUE_TEXT = "Var"
BOOL_FALSE_TEXT = "Yok"

# 对比表中一侧为空时的占位符
EMPTY_PLACEHOLDER = "-"

# ==================== 存储键 ====================
SETTINGS_KEY = "site:settings"
PHONE_PREFIX = "phone:"
USER_PREFIX = "user:"
COMMENTS_PREFIX = "comments:"
RATINGS_PREFIX = "ratings:"
RATERS_PREFIX = "raters:"
CREDENTIAL_PREFIX = "auth:"
SESSION_PREFIX = "session:"

# ==================== 业务限制 ====================
COMMENT_MAX_LENGTH = 500
COMMENTS_CAP = 200
RATINGS_CAP = 500
SCORE_MIN = 0
SCORE_MAX = 100
LATEST_DEFAULT_LIMIT = 6
PASSWORD_MIN_LENGTH = 6

# ==================== 缓存头（越“列表化”、越不易变，max-age 越大） ====================
CACHE_PHONES = "public, max-age=30, s-maxage=60, stale-while-revalidate=120"
CACHE_LATEST = "public, max-age=60, s-maxage=120, stale-while-revalidate=300"
CACHE_SUMMARY = "public, max-age=120, s-maxage=300, stale-while-revalidate=600"
CACHE_SLUG = "public, max-age=120, s-maxage=300, stale-while-revalidate=600"

# 界面侧读缓存的 TTL（秒）
SUMMARY_CACHE_TTL = 60
DETAIL_CACHE_TTL = 300

# 浏览页筛选侧栏最多同时显示的动态字段数
MAX_FILTER_SLOTS = 8
