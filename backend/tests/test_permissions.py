from app.core.claims import AccessTokenClaims
from app.core.permissions import has_role
from app.schemas.user import UserRole


def test_admin_only_rejects_customer():
    assert has_role("customer", [UserRole.ADMIN]) is False


def test_admin_only_accepts_admin():
    assert has_role("admin", [UserRole.ADMIN]) is True


def test_plain_strings_are_accepted_as_allowed_roles():
    assert has_role("manager", ["admin", "manager"]) is True


def test_unknown_role_never_matches():
    assert has_role("superuser", [UserRole.ADMIN, UserRole.MANAGER, UserRole.CUSTOMER]) is False
    assert has_role("superuser", ["superuser"]) is False
    assert has_role("", [UserRole.CUSTOMER]) is False


def _bearer(token_service, user_id, role):
    token = token_service.issue_access_token(AccessTokenClaims(user_id=user_id, role=role))
    return {"Authorization": f"Bearer {token}"}


def test_admin_route_forbidden_for_customer(client, token_service, make_user):
    customer = make_user(email="c@x.com", role="customer")
    response = client.post(
        "/api/v1/users/",
        json={"email": "new@x.com", "password": "secret123", "first_name": "New", "last_name": "User"},
        headers=_bearer(token_service, customer.id, "customer"),
    )
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_admin_route_forbidden_for_unknown_role(client, token_service, make_user):
    user = make_user(email="c@x.com")
    response = client.get(
        f"/api/v1/users/{user.id}",
        headers=_bearer(token_service, user.id, "root"),
    )
    assert response.status_code == 403


def test_admin_route_requires_token(client):
    response = client.get("/api/v1/users/1")
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_admin_can_create_user_with_role_and_tenant(client, db, token_service, make_user):
    from app.models.tenant import Tenant

    tenant = Tenant(name="Acme", address="1 Main St")
    db.add(tenant)
    db.commit()
    admin = make_user(email="admin@x.com", role="admin")

    response = client.post(
        "/api/v1/users/",
        json={
            "email": "manager@x.com",
            "password": "secret123",
            "first_name": "Mia",
            "last_name": "Stone",
            "role": "manager",
            "tenant_id": tenant.id,
        },
        headers=_bearer(token_service, admin.id, "admin"),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "manager"
    assert body["tenant"]["name"] == "Acme"
    assert "password" not in body
    assert "password_hash" not in body


def test_admin_create_with_unknown_tenant(client, token_service, make_user):
    admin = make_user(email="admin@x.com", role="admin")
    response = client.post(
        "/api/v1/users/",
        json={"email": "m@x.com", "password": "secret123", "first_name": "Mia", "last_name": "Stone", "tenant_id": 999},
        headers=_bearer(token_service, admin.id, "admin"),
    )
    assert response.status_code == 400


def test_admin_update_never_changes_email_or_password(client, db, token_service, make_user):
    from app.core.security import verify_password
    from app.services.user_service import user_service

    admin = make_user(email="admin@x.com", role="admin")
    target = make_user(email="t@x.com", password="secret123")

    response = client.patch(
        f"/api/v1/users/{target.id}",
        json={"first_name": "Renamed", "role": "manager", "email": "evil@x.com", "password": "hijacked1"},
        headers=_bearer(token_service, admin.id, "admin"),
    )

    assert response.status_code == 200
    assert response.json()["first_name"] == "Renamed"
    assert response.json()["role"] == "manager"
    stored = user_service.get_user_by_email_with_password(db, "t@x.com")
    assert stored is not None
    assert verify_password("secret123", stored.password_hash)


def test_admin_delete_removes_ledger_rows(client, db, token_service, make_user):
    from app.services.revocation_ledger import RevocationLedger

    admin = make_user(email="admin@x.com", role="admin")
    target = make_user(email="t@x.com")
    RevocationLedger.persist(db, target.id)
    target_id = target.id

    response = client.delete(
        f"/api/v1/users/{target_id}",
        headers=_bearer(token_service, admin.id, "admin"),
    )

    assert response.status_code == 200
    assert RevocationLedger.count_for_user(db, target_id) == 0


def test_admin_update_rejects_null_role(client, db, token_service, make_user):
    admin = make_user(email="admin@x.com", role="admin")
    target = make_user(email="t@x.com", role="manager")

    response = client.patch(
        f"/api/v1/users/{target.id}",
        json={"role": None},
        headers=_bearer(token_service, admin.id, "admin"),
    )

    assert response.status_code == 400
    assert [detail["field"] for detail in response.json()["details"]] == ["body.role"]
    db.refresh(target)
    assert target.role == "manager"


def test_admin_update_rejects_null_name_but_may_clear_tenant(client, token_service, make_user):
    admin = make_user(email="admin@x.com", role="admin")
    target = make_user(email="t@x.com")

    rejected = client.patch(
        f"/api/v1/users/{target.id}",
        json={"last_name": None},
        headers=_bearer(token_service, admin.id, "admin"),
    )
    cleared = client.patch(
        f"/api/v1/users/{target.id}",
        json={"tenant_id": None},
        headers=_bearer(token_service, admin.id, "admin"),
    )

    assert rejected.status_code == 400
    assert cleared.status_code == 200
    assert cleared.json()["tenant"] is None
