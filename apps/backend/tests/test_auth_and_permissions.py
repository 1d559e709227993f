import pytest

from budgetbook.core.deps import get_current_user
from budgetbook.core.permissions import can_access_user_data
from budgetbook.main import app
from budgetbook.models import User, UserRole


@pytest.fixture()
def real_auth(client):
    app.dependency_overrides.pop(get_current_user, None)
    return client


def test_bearer_token_resolves_user(real_auth):
    r = real_auth.get("/api/users/me", headers={"Authorization": "Bearer alice-sub"})
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "alice@example.com"
    assert body["role"] == "member"


@pytest.mark.parametrize("header", [None, "alice-sub", "Basic alice-sub", "Bearer nobody"])
def test_missing_or_unknown_token_is_rejected(real_auth, header):
    headers = {"Authorization": header} if header is not None else {}
    r = real_auth.get("/api/users/me", headers=headers)
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHENTICATED"


def _user(uid, role=UserRole.MEMBER, group_id=1):
    return User(id=uid, email=f"u{uid}@example.com", name=f"u{uid}", role=role, group_id=group_id)


def test_access_rules():
    member = _user(1)
    housemate = _user(2)
    admin = _user(3, UserRole.ADMIN)
    outsider = _user(4, group_id=2)
    lone_admin = _user(5, UserRole.ADMIN, group_id=None)
    root = _user(6, UserRole.SUPERADMIN, group_id=None)

    assert can_access_user_data(member, member)
    assert not can_access_user_data(member, housemate)
    assert can_access_user_data(admin, housemate)
    assert not can_access_user_data(admin, outsider)
    assert not can_access_user_data(lone_admin, _user(7, group_id=None))
    assert can_access_user_data(root, outsider)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
