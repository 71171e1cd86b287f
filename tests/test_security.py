from datetime import datetime, timedelta, timezone

import pytest

from booklend.core.config import Settings
from booklend.core.errors import Conflict, Forbidden, Unauthorized
from booklend.core.permissions import Capability, can, require
from booklend.core.security import Identity, SessionIssuer, hash_password, verify_password
from booklend.models.models import Role
from booklend.services.accounts import CredentialStore


def test_password_hash_is_salted():
    first = hash_password("secret1")
    second = hash_password("secret1")
    assert first != "secret1"
    assert first != second
    assert verify_password("secret1", first)
    assert not verify_password("wrong", first)


def test_session_round_trip(settings):
    sessions = SessionIssuer(settings)
    token = sessions.issue(7, "admin")
    assert sessions.authenticate(token) == Identity(user_id=7, role=Role.ADMIN)


def test_expired_session_rejected(settings):
    sessions = SessionIssuer(settings)
    token = sessions.issue(7, "user", now=datetime.now(timezone.utc) - timedelta(hours=2))
    with pytest.raises(Unauthorized):
        sessions.authenticate(token)


def test_tampered_or_foreign_session_rejected(settings):
    sessions = SessionIssuer(settings)
    other = SessionIssuer(Settings(jwt_secret_key="someone-else"))
    token = sessions.issue(7, "user")
    with pytest.raises(Unauthorized):
        sessions.authenticate(token[:-2] + "xx")
    with pytest.raises(Unauthorized):
        sessions.authenticate(other.issue(7, "admin"))
    with pytest.raises(Unauthorized):
        sessions.authenticate(None)


def test_missing_signing_key_refused():
    with pytest.raises(RuntimeError):
        SessionIssuer(Settings(jwt_secret_key=""))


def test_capability_table():
    user = Identity(user_id=1, role=Role.USER)
    admin = Identity(user_id=2, role=Role.ADMIN)
    for capability in (Capability.BORROW, Capability.RETURN_OWN, Capability.VIEW_OWN_LOANS):
        assert can(user, capability)
        assert can(admin, capability)
    for capability in (Capability.VIEW_ALL_LOANS, Capability.VIEW_USERS, Capability.MANAGE_BOOKS):
        assert not can(user, capability)
        assert can(admin, capability)
    with pytest.raises(Forbidden):
        require(user, Capability.MANAGE_BOOKS)
    assert require(admin, Capability.MANAGE_BOOKS) is admin


def test_register_duplicate_email(db):
    accounts = CredentialStore(db)
    accounts.register("a@x.com", "secret1", Role.USER)
    with pytest.raises(Conflict):
        accounts.register("A@X.com", "other", Role.USER)


def test_register_stores_hash_not_password(db):
    user = CredentialStore(db).register("a@x.com", "secret1")
    assert user.role == "user"
    assert user.password_hash != "secret1"


def test_authenticate_credentials(db):
    accounts = CredentialStore(db)
    accounts.register("a@x.com", "secret1")
    assert accounts.authenticate("a@x.com", "secret1").email == "a@x.com"
    with pytest.raises(Unauthorized):
        accounts.authenticate("a@x.com", "nope")
    with pytest.raises(Unauthorized):
        accounts.authenticate("missing@x.com", "secret1")


def test_admin_registration_can_be_disabled(db):
    accounts = CredentialStore(db, allow_admin_registration=False)
    with pytest.raises(Forbidden):
        accounts.register("boss@x.com", "secret1", Role.ADMIN)
