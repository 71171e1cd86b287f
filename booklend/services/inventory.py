import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from booklend.core.errors import Conflict, NotFound, storage_errors
from booklend.models.models import Book, utcnow

logger = logging.getLogger("booklend.inventory")

# columns that may not be cleared by an update
_REQUIRED_FIELDS = ("name", "details", "quantity")


class BookLedger:
    """Book records and their available quantity.

    ``decrement`` and ``increment`` are single conditional UPDATE statements so
    concurrent callers can never drive ``quantity`` below zero.  They only flush;
    the caller owns the transaction.  ``create``, ``update`` and ``delete`` are
    standalone admin operations and commit on their own.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, book_id: int) -> Book:
        book = self.db.get(Book, book_id)
        if not book:
            raise NotFound("Book not found")
        return book

    def list(self) -> List[Book]:
        return self.db.query(Book).order_by(Book.created_at.desc(), Book.id.desc()).all()

    def create(self, fields: Dict[str, Any]) -> Book:
        book = Book(**fields)
        with storage_errors(self.db):
            self.db.add(book)
            self.db.commit()
            self.db.refresh(book)
        logger.info(f"Created book id={book.id} name={book.name} quantity={book.quantity}")
        return book

    def update(self, book_id: int, fields: Dict[str, Any]) -> Book:
        changes = {k: v for k, v in fields.items() if v is not None or k not in _REQUIRED_FIELDS}
        with storage_errors(self.db):
            book = self.get(book_id)
            # quantity is taken as the new absolute availability
            for k, v in changes.items():
                setattr(book, k, v)
            self.db.commit()
            self.db.refresh(book)
        logger.info(f"Updated book id={book.id} fields={sorted(changes)}")
        return book

    def delete(self, book_id: int) -> None:
        with storage_errors(self.db):
            book = self.get(book_id)
            self.db.delete(book)
            self.db.commit()
        logger.info(f"Deleted book id={book_id}")

    def decrement(self, book_id: int) -> Book:
        rows = (
            self.db.query(Book)
            .filter(Book.id == book_id, Book.quantity > 0)
            .update({Book.quantity: Book.quantity - 1, Book.updated_at: utcnow()}, synchronize_session=False)
        )
        if rows == 0:
            if self.db.get(Book, book_id) is None:
                raise NotFound("Book not found")
            raise Conflict("Book not available")
        return self.db.get(Book, book_id, populate_existing=True)

    def increment(self, book_id: int) -> Book:
        rows = (
            self.db.query(Book)
            .filter(Book.id == book_id)
            .update({Book.quantity: Book.quantity + 1, Book.updated_at: utcnow()}, synchronize_session=False)
        )
        if rows == 0:
            raise NotFound("Book not found")
        return self.db.get(Book, book_id, populate_existing=True)
