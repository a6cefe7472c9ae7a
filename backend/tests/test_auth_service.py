import pytest
from sqlalchemy.exc import OperationalError

from app.core.claims import AccessTokenClaims
from app.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
)
from app.core.keys import KeyMaterial
from app.core.security import verify_password
from app.models.security import RefreshToken
from app.schemas.user import UserLogin, UserRegister
from app.services.auth_service import AuthService
from app.services.revocation_ledger import RevocationLedger
from app.services.token_service import TokenService
from app.services.user_service import user_service


@pytest.fixture
def auth_service(token_service):
    return AuthService(token_service)


def _signup(email, password):
    return UserRegister(email=email, password=password, first_name="Ada", last_name="Lovelace")


def test_register_creates_customer_with_hashed_password(db, auth_service):
    result = auth_service.register(db, _signup("a@x.com", "secret123"))

    stored = user_service.get_user_by_email_with_password(db, "a@x.com")
    assert stored.role == "customer"
    assert stored.password_hash != "secret123"
    assert verify_password("secret123", stored.password_hash)
    assert RevocationLedger.count_for_user(db, result.user.id) == 1


def test_register_duplicate_email_conflicts(db, auth_service):
    auth_service.register(db, _signup("a@x.com", "secret123"))
    with pytest.raises(ConflictError) as excinfo:
        auth_service.register(db, _signup("a@x.com", "secret456"))
    assert excinfo.value.status_code == 400


def test_email_match_is_case_sensitive(db, auth_service):
    auth_service.register(db, _signup("a@x.com", "secret123"))
    result = auth_service.register(db, _signup("A@x.com", "secret123"))
    assert result.user.email == "A@x.com"


def test_login_failures_are_indistinguishable(db, auth_service, make_user):
    make_user(email="a@x.com", password="secret123")

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        auth_service.login(db, UserLogin(email="a@x.com", password="wrong-pass"))
    with pytest.raises(InvalidCredentialsError) as unknown_email:
        auth_service.login(db, UserLogin(email="b@x.com", password="secret123"))

    assert wrong_password.value.message == unknown_email.value.message == "Incorrect email or password"
    assert wrong_password.value.status_code == unknown_email.value.status_code


def test_login_opens_new_session_each_time(db, auth_service, make_user):
    user = make_user(email="a@x.com", password="secret123")
    first = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))
    second = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))

    assert first.tokens.record_id != second.tokens.record_id
    assert RevocationLedger.count_for_user(db, user.id) == 2


def test_login_without_private_key_fails_before_persisting(db, make_user, key_material):
    make_user(email="a@x.com", password="secret123")
    broken = AuthService(
        TokenService(KeyMaterial(private_key=None, public_key=key_material.public_key, refresh_secret="s"))
    )
    with pytest.raises(ConfigurationError):
        broken.login(db, UserLogin(email="a@x.com", password="secret123"))
    assert db.query(RefreshToken).count() == 0


def test_refresh_rotates_refresh_token(db, auth_service, token_service, make_user):
    user = make_user(email="a@x.com", password="secret123")
    session = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))
    old_claims = token_service.validate_refresh_token(db, session.tokens.refresh_token)

    rotated = auth_service.refresh(db, old_claims)

    assert rotated.tokens.record_id != old_claims.record_id
    assert token_service.validate_refresh_token(db, rotated.tokens.refresh_token).user_id == user.id
    with pytest.raises(AuthenticationError):
        token_service.validate_refresh_token(db, session.tokens.refresh_token)
    assert RevocationLedger.count_for_user(db, user.id) == 1


def test_refresh_keeps_role_from_token(db, auth_service, token_service, make_user):
    make_user(email="m@x.com", password="secret123", role="manager")
    session = auth_service.login(db, UserLogin(email="m@x.com", password="secret123"))
    claims = token_service.validate_refresh_token(db, session.tokens.refresh_token)

    rotated = auth_service.refresh(db, claims)

    assert token_service.decode_access_token(rotated.tokens.access_token).role == "manager"


def test_refresh_for_deleted_user_fails(db, auth_service, token_service, make_user):
    user = make_user(email="a@x.com", password="secret123")
    session = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))
    claims = token_service.validate_refresh_token(db, session.tokens.refresh_token)

    user_service.delete_user_by_id(db, user.id)

    with pytest.raises(NotFoundError):
        auth_service.refresh(db, claims)


def test_refresh_tolerates_failed_delete_of_old_record(db, auth_service, token_service, make_user, monkeypatch):
    make_user(email="a@x.com", password="secret123")
    session = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))
    claims = token_service.validate_refresh_token(db, session.tokens.refresh_token)

    def failing_delete(db, record_id):
        raise OperationalError("DELETE", {}, Exception("connection lost"))

    monkeypatch.setattr(RevocationLedger, "delete_by_id", staticmethod(failing_delete))
    rotated = auth_service.refresh(db, claims)

    # Both tokens remain usable; never zero.
    assert token_service.validate_refresh_token(db, rotated.tokens.refresh_token)
    assert token_service.validate_refresh_token(db, session.tokens.refresh_token)


def test_refresh_keeps_old_record_when_persist_fails(db, auth_service, token_service, make_user, monkeypatch):
    make_user(email="a@x.com", password="secret123")
    session = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))
    claims = token_service.validate_refresh_token(db, session.tokens.refresh_token)

    def failing_persist(db, user_id, ttl=None):
        raise OperationalError("INSERT", {}, Exception("connection lost"))

    monkeypatch.setattr(RevocationLedger, "persist", staticmethod(failing_persist))
    with pytest.raises(AuthenticationError):
        auth_service.refresh(db, claims)

    assert token_service.validate_refresh_token(db, session.tokens.refresh_token)


def test_logout_deletes_record_and_is_idempotent(db, auth_service, token_service, make_user):
    user = make_user(email="a@x.com", password="secret123")
    session = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))
    access = token_service.decode_access_token(session.tokens.access_token)
    refresh = token_service.decode_refresh_token(session.tokens.refresh_token)

    auth_service.logout(db, access, refresh)
    auth_service.logout(db, access, refresh)

    assert RevocationLedger.count_for_user(db, user.id) == 0
    with pytest.raises(AuthenticationError):
        token_service.validate_refresh_token(db, session.tokens.refresh_token)


def test_logout_only_ends_the_named_session(db, auth_service, token_service, make_user):
    user = make_user(email="a@x.com", password="secret123")
    laptop = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))
    phone = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))

    auth_service.logout(
        db,
        token_service.decode_access_token(laptop.tokens.access_token),
        token_service.decode_refresh_token(laptop.tokens.refresh_token),
    )

    assert RevocationLedger.count_for_user(db, user.id) == 1
    assert token_service.validate_refresh_token(db, phone.tokens.refresh_token)


def test_logout_with_someone_elses_refresh_token_fails(db, auth_service, token_service, make_user):
    make_user(email="a@x.com", password="secret123")
    make_user(email="b@x.com", password="secret123")
    a = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))
    b = auth_service.login(db, UserLogin(email="b@x.com", password="secret123"))

    with pytest.raises(AuthenticationError):
        auth_service.logout(
            db,
            token_service.decode_access_token(a.tokens.access_token),
            token_service.decode_refresh_token(b.tokens.refresh_token),
        )
    assert token_service.validate_refresh_token(db, b.tokens.refresh_token)


def test_current_user_for_missing_identity(db, auth_service):
    with pytest.raises(NotFoundError):
        auth_service.current_user(db, AccessTokenClaims(user_id=12345, role="customer"))


def test_login_wraps_ledger_failure(db, auth_service, make_user, monkeypatch):
    user = make_user(email="a@x.com", password="secret123")

    def failing_persist(db, user_id, ttl=None):
        raise OperationalError("INSERT", {}, Exception("connection lost"))

    monkeypatch.setattr(RevocationLedger, "persist", staticmethod(failing_persist))
    with pytest.raises(AuthenticationError):
        auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))

    monkeypatch.undo()
    assert RevocationLedger.count_for_user(db, user.id) == 0


def test_register_wraps_ledger_failure(db, auth_service, monkeypatch):
    def failing_persist(db, user_id, ttl=None):
        raise OperationalError("INSERT", {}, Exception("connection lost"))

    monkeypatch.setattr(RevocationLedger, "persist", staticmethod(failing_persist))
    with pytest.raises(AuthenticationError):
        auth_service.register(db, _signup("a@x.com", "secret123"))


def test_logout_wraps_ledger_failure(db, auth_service, token_service, make_user, monkeypatch):
    make_user(email="a@x.com", password="secret123")
    session = auth_service.login(db, UserLogin(email="a@x.com", password="secret123"))
    access = token_service.decode_access_token(session.tokens.access_token)
    refresh = token_service.decode_refresh_token(session.tokens.refresh_token)

    def failing_delete(db, record_id):
        raise OperationalError("DELETE", {}, Exception("connection lost"))

    monkeypatch.setattr(RevocationLedger, "delete_by_id", staticmethod(failing_delete))
    with pytest.raises(AuthenticationError):
        auth_service.logout(db, access, refresh)

    # The session was not ended
    assert token_service.validate_refresh_token(db, session.tokens.refresh_token)
