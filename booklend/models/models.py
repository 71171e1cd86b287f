import enum
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship

from booklend.core.database import Base


def utcnow() -> datetime:
    # naive UTC, matching what SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class LoanStatus(str, enum.Enum):
    BORROWED = "borrowed"
    RETURNED = "returned"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(16), nullable=False, default=Role.USER.value)
    created_at = Column(DateTime, default=utcnow, index=True)

    loans = relationship("Loan", back_populates="user")


class Book(Base):
    __tablename__ = "books"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_books_quantity_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    details = Column(Text, nullable=False)
    image = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    loans = relationship("Loan", back_populates="book")


class Loan(Base):
    __tablename__ = "loans"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # cleared when the book is deleted so the loan history survives
    book_id = Column(Integer, ForeignKey("books.id", ondelete="SET NULL"), nullable=True, index=True)
    borrowed_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    due_date = Column(DateTime, nullable=False)
    returned_at = Column(DateTime, nullable=True)
    status = Column(String(16), nullable=False, default=LoanStatus.BORROWED.value, index=True)

    user = relationship("User", back_populates="loans")
    book = relationship("Book", back_populates="loans")

    @property
    def overdue(self) -> bool:
        return self.status == LoanStatus.BORROWED.value and self.due_date < utcnow()


# One active loan per (user, book); returned loans are unconstrained.
Index(
    "uq_loans_active_user_book",
    Loan.user_id,
    Loan.book_id,
    unique=True,
    sqlite_where=text("status = 'borrowed'"),
    postgresql_where=text("status = 'borrowed'"),
)
