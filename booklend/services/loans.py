"""Borrow/return workflow.

A loan moves ``borrowed -> returned`` exactly once; borrowing the same book
again later creates a new loan.  Consistency between loans and book quantity
is kept by the database rather than by checks in Python:

* the partial unique index ``uq_loans_active_user_book`` allows one active loan
  per (user, book);
* availability is claimed with a conditional ``quantity > 0`` UPDATE.

``borrow`` inserts the loan first and decrements second inside one
transaction, so any failure rolls both back.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from booklend.core.errors import Conflict, NotFound, storage_errors
from booklend.core.security import Identity
from booklend.models.models import Book, Loan, LoanStatus, utcnow
from booklend.services.inventory import BookLedger

logger = logging.getLogger("booklend.loans")

DEFAULT_LOAN_PERIOD_DAYS = 14


class LoanManager:
    def __init__(self, db: Session, books: Optional[BookLedger] = None, loan_period_days: int = DEFAULT_LOAN_PERIOD_DAYS):
        self.db = db
        self.books = books or BookLedger(db)
        self.loan_period = timedelta(days=loan_period_days)

    def borrow(self, identity: Identity, book_id: int) -> Loan:
        with storage_errors(self.db):
            self.books.get(book_id)

            now = utcnow()
            loan = Loan(
                user_id=identity.user_id,
                book_id=book_id,
                borrowed_at=now,
                due_date=now + self.loan_period,
                status=LoanStatus.BORROWED.value,
            )
            self.db.add(loan)
            try:
                self.db.flush()
            except IntegrityError:
                self.db.rollback()
                # the book's foreign key fails too if it was deleted since the lookup
                if self.db.query(Book.id).filter(Book.id == book_id).first() is None:
                    raise NotFound("Book not found")
                logger.warning(f"User {identity.user_id} already has book {book_id} on loan")
                raise Conflict("You already borrowed this book")

            try:
                self.books.decrement(book_id)
            except (Conflict, NotFound):
                self.db.rollback()
                logger.warning(f"User {identity.user_id} could not borrow book {book_id}: unavailable")
                raise

            self.db.commit()
            loan = self._load(loan.id)
        logger.info(f"User {identity.user_id} borrowed book {book_id} loan {loan.id} due {loan.due_date.isoformat()}")
        return loan

    def return_loan(self, identity: Identity, loan_id: int) -> Loan:
        with storage_errors(self.db):
            rows = (
                self.db.query(Loan)
                .filter(
                    Loan.id == loan_id,
                    Loan.user_id == identity.user_id,
                    Loan.status == LoanStatus.BORROWED.value,
                )
                .update(
                    {Loan.status: LoanStatus.RETURNED.value, Loan.returned_at: utcnow()},
                    synchronize_session=False,
                )
            )
            if rows == 0:
                self.db.rollback()
                raise NotFound("Borrowed book not found")

            loan = self.db.get(Loan, loan_id, populate_existing=True)
            if loan.book_id is not None:
                try:
                    self.books.increment(loan.book_id)
                except NotFound:
                    logger.info(f"Book {loan.book_id} for loan {loan_id} no longer exists; inventory unchanged")
            self.db.commit()
            loan = self._load(loan_id)
        logger.info(f"User {identity.user_id} returned loan {loan_id}")
        return loan

    def list_active_for_user(self, user_id: int) -> List[Loan]:
        return (
            self.db.query(Loan)
            .options(joinedload(Loan.book))
            .filter(Loan.user_id == user_id, Loan.status == LoanStatus.BORROWED.value)
            .order_by(Loan.borrowed_at.desc(), Loan.id.desc())
            .all()
        )

    def list_all_active(self) -> List[Loan]:
        return (
            self.db.query(Loan)
            .options(joinedload(Loan.book), joinedload(Loan.user))
            .filter(Loan.status == LoanStatus.BORROWED.value)
            .order_by(Loan.borrowed_at.desc(), Loan.id.desc())
            .all()
        )

    def _load(self, loan_id: int) -> Loan:
        return (
            self.db.query(Loan)
            .options(joinedload(Loan.book))
            .populate_existing()
            .filter(Loan.id == loan_id)
            .one()
        )
