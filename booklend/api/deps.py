from typing import Iterator, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from booklend.core.config import Settings
from booklend.core.errors import Unauthorized
from booklend.core.permissions import Capability, require
from booklend.core.security import Identity, SessionIssuer
from booklend.services.accounts import CredentialStore
from booklend.services.inventory import BookLedger
from booklend.services.loans import LoanManager


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.sessions


def get_books(db: Session = Depends(get_db)) -> BookLedger:
    return BookLedger(db)


def get_loans(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> LoanManager:
    return LoanManager(db, BookLedger(db), loan_period_days=settings.loan_period_days)


def get_accounts(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> CredentialStore:
    return CredentialStore(db, allow_admin_registration=settings.allow_admin_registration)


def _session_token(request: Request, settings: Settings) -> Optional[str]:
    return request.cookies.get(settings.cookie_name)


def get_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> Identity:
    return sessions.authenticate(_session_token(request, settings))


def get_optional_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> Optional[Identity]:
    try:
        return sessions.authenticate(_session_token(request, settings))
    except Unauthorized:
        return None


def requires(capability: Capability):
    """Dependency factory: authenticated identity holding ``capability``."""
    def dependency(identity: Identity = Depends(get_identity)) -> Identity:
        return require(identity, capability)
    return dependency
