import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booklend.core.errors import Conflict, Forbidden, Unauthorized, storage_errors
from booklend.core.security import hash_password, verify_password
from booklend.models.models import Role, User

logger = logging.getLogger("booklend.accounts")


class CredentialStore:
    def __init__(self, db: Session, allow_admin_registration: bool = True):
        self.db = db
        self.allow_admin_registration = allow_admin_registration

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def register(self, email: str, password: str, role: Role = Role.USER) -> User:
        email = email.strip().lower()
        role = Role(role or Role.USER)
        if role == Role.ADMIN and not self.allow_admin_registration:
            raise Forbidden("Admin registration is disabled")
        with storage_errors(self.db):
            if self.find_by_email(email):
                raise Conflict("User already exists")
            user = User(email=email, password_hash=hash_password(password), role=role.value)
            self.db.add(user)
            try:
                self.db.commit()
            except IntegrityError:
                # lost a race with a concurrent registration for the same email
                self.db.rollback()
                raise Conflict("User already exists")
            self.db.refresh(user)
        logger.info(f"Registered user id={user.id} role={user.role}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.find_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning("Rejected login attempt")
            raise Unauthorized("Invalid credentials")
        return user

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
