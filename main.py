import logging
import time
import traceback

import uvicorn
from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, PlainTextResponse

import constants
from catalog import community, phones, users
from catalog.admin_settings import build_effective_sections, load_effective_settings, load_settings, save_settings
from catalog.auth import (
    bearer_token,
    current_user,
    profile_or_default,
    require_active,
    require_admin,
    sign_in,
    sign_out,
    sign_up,
)
from catalog.compare import build_pair, compare, parse_pair
from catalog.errors import BadRequest, CatalogError
from catalog.kv_store import get_db_file
from catalog.spec_import import import_entries
from schemas import (
    BanAction,
    CommentIn,
    ImportRequest,
    PhonePayload,
    PhoneUpdate,
    RatingIn,
    SettingsPut,
    SignIn,
    SignUp,
    UserUpdate,
)

# ==================== 日志配置 ====================
logging.basicConfig(
    level=constants.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("catalog.api")

API = constants.API_PREFIX
PANEL_PATH = "/panel"   # 审核面板（需要管理员登录）

app = FastAPI(title="Telefon Kataloğu")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - start) * 1000
    logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed)
    return response


# ==================== 错误处理 ====================
# 所有错误都以纯文本返回；前端把响应体直接当提示文字展示

@app.exception_handler(CatalogError)
async def _catalog_error(request: Request, exc: CatalogError):
    return PlainTextResponse(exc.message, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return PlainTextResponse(f"Invalid request: {detail}", status_code=400)


@app.exception_handler(Exception)
async def _unexpected_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return PlainTextResponse(str(exc), status_code=500)


@app.get("/", response_class=HTMLResponse)
def read_main():
    return f"""
    <!DOCTYPE html>
    <html>
        <head>
            <title>Telefon Kataloğu</title>
            <style>
                body {{ font-family: -apple-system, sans-serif; display: flex; justify-content: center; align-items: center; height: 100vh; margin: 0; background-color: #f5f7f9; }}
                .container {{ text-align: center; background: white; padding: 2rem; border-radius: 12px; box-shadow: 0 10px 25px rgba(0,0,0,0.05); }}
                h1 {{ color: #2d3748; margin-bottom: 1.5rem; }}
                .btn-group {{ display: flex; gap: 1rem; justify-content: center; }}
                .btn {{ padding: 12px 24px; border-radius: 8px; text-decoration: none; font-weight: bold; }}
                .btn-main {{ background-color: #4299e1; color: white; }}
                .btn-reg {{ background-color: #edf2f7; color: #4a5568; }}
                p {{ color: #718096; margin-bottom: 2rem; }}
            </style>
        </head>
        <body>
            <div class="container">
                <h1>📱 Telefon Kataloğu</h1>
                <p>Telefonları filtreleyin, karşılaştırın ve değerlendirin</p>
                <div class="btn-group">
                    <a href="{constants.MAIN_PATH}" class="btn btn-main">Kataloğa git</a>
                    <a href="{PANEL_PATH}" class="btn btn-reg">Yönetim paneli</a>
                    <a href="/docs" class="btn btn-reg">API</a>
                </div>
            </div>
        </body>
    </html>
    """


@app.get(f"{API}/health")
def health():
    return {"status": "ok"}


# ==================== 账户 ====================

@app.post(f"{API}/signup")
def signup(body: SignUp, DB_FILE: str = Depends(get_db_file)):
    profile = sign_up(body.email, body.password, body.name, DB_FILE)
    return {"success": True, "user": profile}


@app.post(f"{API}/auth/signin")
def signin(body: SignIn, DB_FILE: str = Depends(get_db_file)):
    return sign_in(body.email, body.password, DB_FILE)


@app.post(f"{API}/auth/signout")
def signout(token: str | None = Depends(bearer_token), DB_FILE: str = Depends(get_db_file)):
    sign_out(token, DB_FILE)
    return {"success": True}


@app.get(f"{API}/auth/session")
def session(user: dict = Depends(current_user), DB_FILE: str = Depends(get_db_file)):
    return {"user": user, "profile": profile_or_default(user, DB_FILE)}


@app.get(f"{API}/profile")
def profile(user: dict = Depends(current_user), DB_FILE: str = Depends(get_db_file)):
    return profile_or_default(user, DB_FILE)


# ==================== 公开读取 ====================
# 注意：固定路径必须写在 /phones/{phone_id} 之前

@app.get(f"{API}/phones")
def get_phones(response: Response, DB_FILE: str = Depends(get_db_file)):
    response.headers["Cache-Control"] = constants.CACHE_PHONES
    return phones.list_approved(DB_FILE)


@app.get(f"{API}/phones/latest")
def get_latest(
    response: Response,
    category: str = constants.DEFAULT_CATEGORIES[0],
    limit: int = constants.LATEST_DEFAULT_LIMIT,
    DB_FILE: str = Depends(get_db_file),
):
    response.headers["Cache-Control"] = constants.CACHE_LATEST
    return phones.latest(category, limit, DB_FILE)


@app.get(f"{API}/phones/summary")
def get_summary(response: Response, DB_FILE: str = Depends(get_db_file)):
    response.headers["Cache-Control"] = constants.CACHE_SUMMARY
    return phones.summary(DB_FILE)


@app.get(f"{API}/phones/slug/{{slug}}")
def get_phone_by_slug(slug: str, response: Response, DB_FILE: str = Depends(get_db_file)):
    phone = phones.get_by_slug(slug, DB_FILE)
    response.headers["Cache-Control"] = constants.CACHE_SLUG
    return phone


@app.get(f"{API}/phones/{{phone_id}}")
def get_phone(phone_id: str, DB_FILE: str = Depends(get_db_file)):
    return phones.get_phone(phone_id, DB_FILE)


@app.get(f"{API}/compare/{{pair}}")
def get_comparison(pair: str, DB_FILE: str = Depends(get_db_file)):
    """分享链接：slugA-vs-slugB，在全部生效区块上对比"""
    parsed = parse_pair(pair)
    if not parsed:
        raise BadRequest("Invalid compare pair")
    phone_a = phones.get_by_slug(parsed[0], DB_FILE)
    phone_b = phones.get_by_slug(parsed[1], DB_FILE)
    sections = build_effective_sections(load_effective_settings(DB_FILE))
    return {
        "pair": build_pair(phone_a["slug"], phone_b["slug"]),
        "phoneA": phone_a,
        "phoneB": phone_b,
        "sections": compare(phone_a, phone_b, [s["id"] for s in sections], sections),
    }


@app.get(f"{API}/settings")
def get_public_settings(DB_FILE: str = Depends(get_db_file)):
    raw, version = load_settings(DB_FILE)
    return {"version": version, "settings": raw}


# ==================== 评论 / 评分 ====================

@app.get(f"{API}/phones/{{phone_id}}/comments")
def get_comments(phone_id: str, DB_FILE: str = Depends(get_db_file)):
    return community.list_comments(phone_id, DB_FILE)


@app.post(f"{API}/phones/{{phone_id}}/comments")
def post_comment(
    phone_id: str,
    body: CommentIn,
    profile: dict = Depends(require_active),
    DB_FILE: str = Depends(get_db_file),
):
    entry = community.add_comment(phone_id, body.message, profile, DB_FILE)
    return {"success": True, "comment": entry}


@app.get(f"{API}/phones/{{phone_id}}/ratings")
def get_ratings(phone_id: str, DB_FILE: str = Depends(get_db_file)):
    return community.get_rating_summary(phone_id, DB_FILE)


@app.get(f"{API}/phones/{{phone_id}}/ratings/me")
def get_my_rating(phone_id: str, user: dict = Depends(current_user), DB_FILE: str = Depends(get_db_file)):
    return community.get_my_rating(phone_id, user["id"], DB_FILE)


@app.post(f"{API}/phones/{{phone_id}}/ratings")
def post_rating(
    phone_id: str,
    body: RatingIn,
    profile: dict = Depends(require_active),
    DB_FILE: str = Depends(get_db_file),
):
    result = community.add_rating(phone_id, body.score, profile["id"], DB_FILE)
    return {"success": True, **result}


@app.delete(f"{API}/admin/phones/{{phone_id}}/comments/{{comment_id}}")
def delete_comment(
    phone_id: str,
    comment_id: str,
    admin: dict = Depends(require_admin),
    DB_FILE: str = Depends(get_db_file),
):
    community.delete_comment(phone_id, comment_id, DB_FILE)
    return {"success": True}


# ==================== 设备提交与审核 ====================

@app.post(f"{API}/phones")
def submit_phone(
    body: PhonePayload,
    user: dict = Depends(current_user),
    profile: dict = Depends(require_active),
    DB_FILE: str = Depends(get_db_file),
):
    phone = phones.create_phone(body.model_dump(), user, profile, DB_FILE)
    return {"success": True, "phone": phone}


@app.get(f"{API}/admin/phones")
def admin_all_phones(admin: dict = Depends(require_admin), DB_FILE: str = Depends(get_db_file)):
    return phones.list_all(DB_FILE)


@app.get(f"{API}/admin/phones/pending")
def admin_pending_phones(admin: dict = Depends(require_admin), DB_FILE: str = Depends(get_db_file)):
    return phones.list_pending(DB_FILE)


@app.post(f"{API}/admin/phones/import")
def admin_import_phones(body: ImportRequest, admin: dict = Depends(require_admin), DB_FILE: str = Depends(get_db_file)):
    result = import_entries(body.entries, admin, DB_FILE)
    return {"success": not result["errors"], **result}


@app.post(f"{API}/admin/phones/{{phone_id}}/{{action}}")
def admin_review_phone(
    phone_id: str,
    action: str,
    admin: dict = Depends(require_admin),
    DB_FILE: str = Depends(get_db_file),
):
    phone = phones.review_phone(phone_id, action, admin, DB_FILE)
    return {"success": True, "phone": phone}


@app.put(f"{API}/admin/phones/{{phone_id}}")
def admin_update_phone(
    phone_id: str,
    body: PhoneUpdate,
    admin: dict = Depends(require_admin),
    DB_FILE: str = Depends(get_db_file),
):
    phone = phones.update_phone(phone_id, body.model_dump(exclude_unset=True), DB_FILE)
    return {"success": True, "phone": phone}


@app.delete(f"{API}/admin/phones/{{phone_id}}")
def admin_delete_phone(phone_id: str, admin: dict = Depends(require_admin), DB_FILE: str = Depends(get_db_file)):
    phones.delete_phone(phone_id, DB_FILE)
    return {"success": True}


# ==================== 站点设置 ====================

@app.get(f"{API}/admin/settings")
def admin_get_settings(admin: dict = Depends(require_admin), DB_FILE: str = Depends(get_db_file)):
    raw, version = load_settings(DB_FILE)
    return {"version": version, "settings": raw}


@app.put(f"{API}/admin/settings")
def admin_put_settings(body: SettingsPut, admin: dict = Depends(require_admin), DB_FILE: str = Depends(get_db_file)):
    raw, version = save_settings(body.settings, body.version, DB_FILE)
    return {"success": True, "version": version, "settings": raw}


# ==================== 用户管理 ====================

@app.get(f"{API}/admin/users")
def admin_list_users(admin: dict = Depends(require_admin), DB_FILE: str = Depends(get_db_file)):
    return users.list_users(DB_FILE)


@app.put(f"{API}/admin/users/{{user_id}}")
def admin_update_user(
    user_id: str,
    body: UserUpdate,
    admin: dict = Depends(require_admin),
    DB_FILE: str = Depends(get_db_file),
):
    updated = users.update_user(user_id, body.model_dump(exclude_unset=True), DB_FILE)
    return {"success": True, "user": updated}


@app.post(f"{API}/admin/users/{{user_id}}/ban")
def admin_ban_user(
    user_id: str,
    body: BanAction,
    admin: dict = Depends(require_admin),
    DB_FILE: str = Depends(get_db_file),
):
    updated = users.set_ban(user_id, body.action, admin, DB_FILE)
    return {"success": True, "user": updated}


# ==================== 应用启动入口 ====================

if __name__ == "__main__":
    """
    主程序入口

    功能说明:
        把 Gradio 界面挂到 FastAPI 上，再用 uvicorn 启动同一个进程
        - /home    公开的目录浏览 / 对比 / 设置查看
        - /panel   审核面板（仅管理员账号可登录）
        - /make-server/...  JSON 接口
    """
    try:
        import gradio as gr

        from ui import admin_ui, authenticate, main_ui

        gr.mount_gradio_app(app, main_ui, path=constants.MAIN_PATH)
        gr.mount_gradio_app(
            app,
            admin_ui,
            path=PANEL_PATH,
            auth=authenticate,
            auth_message="🔐 Yönetici hesabınızla giriş yapın (e-posta / şifre)",
        )

        uvicorn.run(app, host=constants.HOST, port=constants.PORT)
    except Exception:
        traceback.print_exc()
