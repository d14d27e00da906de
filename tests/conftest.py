"""
测试公共夹具

- db_file: 每个测试一个临时 SQLite 文件（改 constants.DB_FILE，get_db_file 读取时生效）
- client: 挂在同一临时库上的 FastAPI TestClient
- accounts: 预先创建的管理员 / 普通用户及其登录令牌
"""

import pytest
from fastapi.testclient import TestClient

import constants
from catalog import local_cache
from catalog.auth import create_user, sign_in


@pytest.fixture
def db_file(tmp_path, monkeypatch):
    path = str(tmp_path / "catalog_test.db")
    monkeypatch.setattr(constants, "DB_FILE", path)
    local_cache.clear_cache()
    yield path
    local_cache.clear_cache()


@pytest.fixture
def client(db_file):
    from main import app

    return TestClient(app)


@pytest.fixture
def accounts(db_file):
    admin = create_user("admin@example.com", "admin123", "Yönetici", db_file, role="admin")
    user = create_user("user1@example.com", "password1", "Kullanıcı 1", db_file)
    return {
        "admin": admin,
        "user": user,
        "admin_token": sign_in("admin@example.com", "admin123", db_file)["accessToken"],
        "user_token": sign_in("user1@example.com", "password1", db_file)["accessToken"],
    }


@pytest.fixture
def admin_headers(accounts):
    return {"Authorization": f"Bearer {accounts['admin_token']}"}


@pytest.fixture
def user_headers(accounts):
    return {"Authorization": f"Bearer {accounts['user_token']}"}


@pytest.fixture
def admin_profile(accounts):
    return accounts["admin"]
