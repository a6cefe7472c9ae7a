import os
import tempfile

# Must be set before anything imports app.config
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DB_INIT_MODE", "off")
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "auth-service-tests.log"))

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_token_service
from app.core.database import Base, get_db
from app.core.keys import KeyMaterial
from app.core.security import get_password_hash
from app.main import app
from app.models.user import User
from app.services.token_service import TokenService


@pytest.fixture(scope="session")
def rsa_key_pair():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return private_pem, public_pem


@pytest.fixture
def key_material(rsa_key_pair):
    private_pem, public_pem = rsa_key_pair
    return KeyMaterial(
        private_key=private_pem,
        public_key=public_pem,
        refresh_secret="test-refresh-secret",
    )


@pytest.fixture
def token_service(key_material):
    return TokenService(key_material)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db, token_service):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_token_service] = lambda: token_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(email="user@example.com", password="secret123", role="customer", tenant_id=None):
        user = User(
            email=email,
            first_name="Test",
            last_name="User",
            password_hash=get_password_hash(password),
            role=role,
            tenant_id=tenant_id,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


def cookies_from(response):
    """Name -> (value, raw Set-Cookie header) for every cookie the response sets."""
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        cookies[name] = (rest.split(";", 1)[0], header)
    return cookies
