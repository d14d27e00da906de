"""
JSON 接口的端到端场景（TestClient + 临时 SQLite）
"""

import pytest

import constants

API = constants.API_PREFIX

S24 = {
    "brand": "Samsung",
    "title": "Galaxy S24",
    "price": "42.999 TL",
    "specs": {
        "sections": {
            "ekran": {"ekranBoyutu": "6.2 inç"},
            "ramDepolama": {"bellek": "8 GB"},
            "kablosuzBaglantilar": {"nfc": "Var"},
        }
    },
}
IPHONE = {
    "brand": "Apple",
    "title": "iPhone 15",
    "price": "54.999 TL",
    "specs": {"sections": {"ekran": {"ekranBoyutu": "6.1 inç"}, "ramDepolama": {"bellek": "6 GB"}}},
}


def submit(client, headers, payload):
    response = client.post(f"{API}/phones", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["phone"]


def approved_phone(client, admin_headers, payload=S24):
    return submit(client, admin_headers, {**payload, "autoApprove": True})


def public_ids(client):
    return [p["id"] for p in client.get(f"{API}/phones").json()]


# ==================== 账户 ====================

def test_health(client):
    assert client.get(f"{API}/health").json() == {"status": "ok"}


def test_signup_signin_session_signout(client):
    response = client.post(f"{API}/signup", json={"email": "Ayse@Example.com", "password": "gizli123", "name": "Ayşe"})
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "user"

    duplicate = client.post(f"{API}/signup", json={"email": "ayse@example.com", "password": "gizli123"})
    assert duplicate.status_code == 400
    assert duplicate.text == "User already registered"

    wrong = client.post(f"{API}/auth/signin", json={"email": "ayse@example.com", "password": "yanlis"})
    assert wrong.status_code == 401

    token = client.post(f"{API}/auth/signin", json={"email": "ayse@example.com", "password": "gizli123"}).json()[
        "accessToken"
    ]
    headers = {"Authorization": f"Bearer {token}"}
    session = client.get(f"{API}/auth/session", headers=headers).json()
    assert session["user"]["email"] == "ayse@example.com"
    assert client.get(f"{API}/profile", headers=headers).json()["name"] == "Ayşe"

    client.post(f"{API}/auth/signout", headers=headers)
    assert client.get(f"{API}/auth/session", headers=headers).status_code == 401


def test_malformed_body_is_bad_request(client):
    response = client.post(f"{API}/signup", json={"email": "a@b.c"})
    assert response.status_code == 400
    assert response.text.startswith("Invalid request")


def test_auth_errors(client, user_headers):
    anonymous = client.post(f"{API}/phones", json=S24)
    assert anonymous.status_code == 401
    assert anonymous.text == "Unauthorized"

    bad_token = client.post(f"{API}/phones", json=S24, headers={"Authorization": "Bearer yok"})
    assert bad_token.status_code == 401

    forbidden = client.get(f"{API}/admin/phones/pending", headers=user_headers)
    assert forbidden.status_code == 403
    assert forbidden.text == "Admin access required"


# ==================== 提交与审核 ====================

def test_submission_moderation_flow(client, accounts, user_headers, admin_headers):
    phone = submit(client, user_headers, {**S24, "autoApprove": True})
    assert phone["status"] == "pending"
    assert phone["submittedBy"] == accounts["user"]["id"]
    assert phone["specs"]["display"]["size"] == "6.2 inç"

    assert phone["id"] not in public_ids(client)
    pending = client.get(f"{API}/admin/phones/pending", headers=admin_headers).json()
    assert [p["id"] for p in pending] == [phone["id"]]

    response = client.post(f"{API}/admin/phones/{phone['id']}/approve", headers=admin_headers)
    assert response.status_code == 200
    approved = response.json()["phone"]
    assert approved["status"] == "approved"
    assert approved["reviewedBy"] == accounts["admin"]["id"]
    assert approved["reviewedAt"]

    assert phone["id"] in public_ids(client)
    assert client.get(f"{API}/admin/phones/pending", headers=admin_headers).json() == []

    again = client.post(f"{API}/admin/phones/{phone['id']}/reject", headers=admin_headers)
    assert again.status_code == 409


def test_reject_and_invalid_action(client, user_headers, admin_headers):
    phone = submit(client, user_headers, IPHONE)

    assert client.post(f"{API}/admin/phones/{phone['id']}/publish", headers=admin_headers).status_code == 400
    rejected = client.post(f"{API}/admin/phones/{phone['id']}/reject", headers=admin_headers).json()["phone"]
    assert rejected["status"] == "rejected"
    assert phone["id"] not in public_ids(client)
    assert client.post(f"{API}/admin/phones/missing/approve", headers=admin_headers).status_code == 404


def test_submission_requires_brand_and_title(client, user_headers):
    response = client.post(f"{API}/phones", json={"title": "Galaxy"}, headers=user_headers)
    assert response.status_code == 400
    assert response.text == "brand is required"


def test_admin_edit_and_delete(client, admin_headers):
    phone = approved_phone(client, admin_headers)

    response = client.put(
        f"{API}/admin/phones/{phone['id']}",
        json={"price": "39.999 TL", "specs": {"sections": {"ekran": {"ekranBoyutu": "6.3 inç"}}}},
        headers=admin_headers,
    )
    updated = response.json()["phone"]
    assert updated["price"] == "39.999 TL"
    assert updated["title"] == "Galaxy S24"
    assert updated["status"] == "approved"
    assert updated["specs"]["sections"]["ekran"]["ekranBoyutu"] == "6.3 inç"
    assert updated["specs"]["sections"]["ramDepolama"]["bellek"] == ""

    assert client.delete(f"{API}/admin/phones/{phone['id']}", headers=admin_headers).status_code == 200
    assert phone["id"] not in public_ids(client)
    assert client.get(f"{API}/phones/{phone['id']}").status_code == 404
    assert client.delete(f"{API}/admin/phones/{phone['id']}", headers=admin_headers).status_code == 404


@pytest.mark.parametrize("specs", [{"sections": {"ekran": "6.1 inç"}}, {"sections": {"ekran": ["ab"]}}, {"sections": "oops"}])
def test_malformed_sections_rejected_on_submit(client, user_headers, specs):
    response = client.post(f"{API}/phones", json={"brand": "Apple", "title": "iPhone 15", "specs": specs}, headers=user_headers)
    assert response.status_code == 400
    assert "specs.sections" in response.text


def test_malformed_sections_keep_stored_values(client, admin_headers):
    phone = approved_phone(client, admin_headers)

    response = client.put(
        f"{API}/admin/phones/{phone['id']}",
        json={"price": "1 TL", "specs": {"sections": "oops"}},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.text == "specs.sections must be an object"

    stored = client.get(f"{API}/phones/{phone['id']}").json()
    assert stored["price"] == "42.999 TL"
    assert stored["specs"]["sections"]["ekran"]["ekranBoyutu"] == "6.2 inç"
    assert stored["specs"]["comms"]["nfc"] == "Var"


def test_admin_import(client, admin_headers):
    body = {"entries": [{"Marka": "Xiaomi", "Model": "Redmi Note 13 Pro", "Ekran": {"Ekran Boyutu": "6.67 inç"}}, 5]}
    result = client.post(f"{API}/admin/phones/import", json=body, headers=admin_headers).json()

    assert len(result["imported"]) == 1
    assert result["errors"] == ["#2: import entry must be an object"]
    assert result["success"] is False
    assert client.get(f"{API}/phones/slug/xiaomi-redmi-note-13-pro").status_code == 200


# ==================== 公开读取 ====================

def test_latest_summary_and_slug(client, admin_headers):
    version = client.get(f"{API}/admin/settings", headers=admin_headers).json()["version"]
    client.put(
        f"{API}/admin/settings",
        json={
            "version": version,
            "settings": {"filterFields": [{"sectionId": "ramDepolama", "fieldKey": "bellek", "filterType": "range"}]},
        },
        headers=admin_headers,
    )
    s24 = approved_phone(client, admin_headers)
    iphone = approved_phone(client, admin_headers, IPHONE)

    latest = client.get(f"{API}/phones/latest")
    assert {p["id"] for p in latest.json()} == {s24["id"], iphone["id"]}
    assert "max-age" in latest.headers["cache-control"]
    assert len(client.get(f"{API}/phones/latest", params={"limit": 1}).json()) == 1
    assert client.get(f"{API}/phones/latest", params={"category": "Tablet"}).json() == []

    summary = client.get(f"{API}/phones/summary")
    assert summary.headers["cache-control"] == constants.CACHE_SUMMARY
    by_id = {item["id"]: item for item in summary.json()}
    assert by_id[s24["id"]]["filters"] == {"ramDepolama:bellek": "8 GB"}
    assert by_id[s24["id"]]["slug"] == "samsung-galaxy-s24"
    assert "specs" not in by_id[s24["id"]]

    detail = client.get(f"{API}/phones/slug/samsung-galaxy-s24").json()
    assert detail["id"] == s24["id"]
    assert detail["specs"]["memory"]["ram"] == "8 GB"
    assert client.get(f"{API}/phones/slug/yok-boyle").status_code == 404


def test_compare_endpoint(client, admin_headers):
    approved_phone(client, admin_headers)
    approved_phone(client, admin_headers, IPHONE)

    body = client.get(f"{API}/compare/samsung-galaxy-s24-vs-apple-iphone-15").json()
    assert body["pair"] == "samsung-galaxy-s24-vs-apple-iphone-15"
    ekran = next(block for block in body["sections"] if block["sectionId"] == "ekran")
    assert ekran["rows"][0] == {"label": "Ekran Boyutu", "valueA": "6.2 inç", "valueB": "6.1 inç"}

    assert client.get(f"{API}/compare/samsung-galaxy-s24").status_code == 400
    assert client.get(f"{API}/compare/samsung-galaxy-s24-vs-yok").status_code == 404


# ==================== 评论 / 评分 ====================

def test_duplicate_rating_conflict(client, admin_headers, user_headers):
    phone = approved_phone(client, admin_headers)
    url = f"{API}/phones/{phone['id']}/ratings"

    first = client.post(url, json={"score": 85}, headers=user_headers)
    assert first.json() == {"success": True, "average": 85.0, "count": 1, "score": 85}

    second = client.post(url, json={"score": 20}, headers=user_headers)
    assert second.status_code == 409
    assert second.text == "Already rated"

    assert client.get(url).json() == {"average": 85.0, "count": 1}
    assert client.get(f"{url}/me", headers=user_headers).json() == {"score": 85}
    assert client.post(url, json={"score": "iyi"}, headers=admin_headers).status_code == 400


def test_banned_user_cannot_comment(client, accounts, admin_headers, user_headers):
    phone = approved_phone(client, admin_headers)
    url = f"{API}/phones/{phone['id']}/comments"

    assert client.post(url, json={"message": "Harika telefon"}, headers=user_headers).status_code == 200
    before = client.get(url).json()
    assert len(before) == 1

    ban = client.post(f"{API}/admin/users/{accounts['user']['id']}/ban", json={"action": "ban"}, headers=admin_headers)
    assert ban.json()["user"]["status"] == "banned"

    response = client.post(url, json={"message": "Tekrar"}, headers=user_headers)
    assert response.status_code == 403
    assert response.text == "User is banned"
    assert client.get(url).json() == before

    client.post(f"{API}/admin/users/{accounts['user']['id']}/ban", json={"action": "unban"}, headers=admin_headers)
    assert client.post(url, json={"message": "Tekrar"}, headers=user_headers).status_code == 200


def test_admin_deletes_comment(client, admin_headers, user_headers):
    phone = approved_phone(client, admin_headers)
    url = f"{API}/phones/{phone['id']}/comments"
    comment = client.post(url, json={"message": "Silinecek"}, headers=user_headers).json()["comment"]

    delete_url = f"{API}/admin/phones/{phone['id']}/comments/{comment['id']}"
    assert client.delete(delete_url, headers=user_headers).status_code == 403
    assert client.delete(delete_url, headers=admin_headers).status_code == 200
    assert client.get(url).json() == []
    assert client.delete(delete_url, headers=admin_headers).status_code == 404


# ==================== 设置 / 用户管理 ====================

def test_settings_optimistic_concurrency(client, admin_headers, user_headers):
    url = f"{API}/admin/settings"
    assert client.get(url, headers=user_headers).status_code == 403
    assert client.get(url, headers=admin_headers).json() == {"version": 0, "settings": {}}

    overlay = {"categories": ["Telefon", "Tablet"]}
    missing = client.put(url, json={"settings": overlay}, headers=admin_headers)
    assert missing.status_code == 428

    saved = client.put(url, json={"version": 0, "settings": overlay}, headers=admin_headers)
    assert saved.status_code == 200
    assert saved.json()["version"] == 1

    stale = client.put(url, json={"version": 0, "settings": {"categories": ["Saat"]}}, headers=admin_headers)
    assert stale.status_code == 409

    malformed = client.put(url, json={"version": 1, "settings": {"categories": "Saat"}}, headers=admin_headers)
    assert malformed.status_code == 400

    assert client.get(f"{API}/settings").json() == {"version": 1, "settings": overlay}


def test_user_management(client, accounts, admin_headers):
    listed = client.get(f"{API}/admin/users", headers=admin_headers).json()
    assert {u["email"] for u in listed} == {"admin@example.com", "user1@example.com"}

    user_id = accounts["user"]["id"]
    url = f"{API}/admin/users/{user_id}"
    updated = client.put(url, json={"name": " Yeni Ad ", "role": "superuser", "email": "yeni@example.com"},
                         headers=admin_headers).json()["user"]
    assert updated["name"] == "Yeni Ad"
    assert updated["role"] == "user"
    assert updated["email"] == "yeni@example.com"

    # 改邮箱后用新邮箱登录
    signin = client.post(f"{API}/auth/signin", json={"email": "yeni@example.com", "password": "password1"})
    assert signin.status_code == 200

    assert client.put(url, json={"email": "gecersiz"}, headers=admin_headers).status_code == 400
    assert client.put(f"{API}/admin/users/yok", json={"name": "x"}, headers=admin_headers).status_code == 404


def test_ban_records_reviewer_and_unban_clears_it(client, accounts, admin_headers):
    url = f"{API}/admin/users/{accounts['user']['id']}/ban"

    banned = client.post(url, json={"action": "ban"}, headers=admin_headers).json()["user"]
    assert banned["bannedBy"] == accounts["admin"]["id"]
    assert banned["name"] == "Kullanıcı 1"

    active = client.post(url, json={"action": "unban"}, headers=admin_headers).json()["user"]
    assert active["status"] == "active"
    assert active["bannedAt"] is None
    assert active["bannedBy"] is None

    assert client.post(f"{API}/admin/users/yok/ban", json={"action": "ban"}, headers=admin_headers).status_code == 404
