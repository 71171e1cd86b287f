import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from booklend.api.deps import (
    get_accounts,
    get_books,
    get_loans,
    get_optional_identity,
    get_session_issuer,
    get_settings,
    requires,
)
from booklend.core.config import Settings
from booklend.core.permissions import Capability
from booklend.core.security import Identity, SessionIssuer
from booklend.schemas import schemas
from booklend.services.accounts import CredentialStore
from booklend.services.inventory import BookLedger
from booklend.services.loans import LoanManager

logger = logging.getLogger("booklend.api")

router = APIRouter(prefix="/api")


# -----------------------------
# Auth
# -----------------------------
@router.post("/auth/register", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def register(body: schemas.RegisterIn, accounts: CredentialStore = Depends(get_accounts)):
    return accounts.register(body.email, body.password, body.role)


@router.post("/auth/login", response_model=schemas.UserOut)
def login(body: schemas.LoginIn, response: Response,
          accounts: CredentialStore = Depends(get_accounts),
          sessions: SessionIssuer = Depends(get_session_issuer),
          settings: Settings = Depends(get_settings)):
    user = accounts.authenticate(body.email, body.password)
    token = sessions.issue(user.id, user.role)
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.session_ttl_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    logger.info(f"User {user.id} logged in")
    return user


@router.get("/auth/me", response_model=Optional[schemas.UserOut])
def me(identity: Optional[Identity] = Depends(get_optional_identity),
       accounts: CredentialStore = Depends(get_accounts)):
    if identity is None:
        return None
    return accounts.get(identity.user_id)


@router.post("/auth/logout", response_model=schemas.MessageOut)
def logout(response: Response, settings: Settings = Depends(get_settings)):
    response.delete_cookie(settings.cookie_name, httponly=True, samesite="lax", secure=settings.cookie_secure)
    return {"message": "Logged out"}


# -----------------------------
# Books
# -----------------------------
@router.get("/books", response_model=List[schemas.BookOut])
def list_books(books: BookLedger = Depends(get_books)):
    return books.list()


@router.get("/books/{book_id}", response_model=schemas.BookOut)
def read_book(book_id: int, books: BookLedger = Depends(get_books)):
    return books.get(book_id)


@router.post("/books", response_model=schemas.BookOut, status_code=status.HTTP_201_CREATED)
def create_book(book_in: schemas.BookCreate,
                identity: Identity = Depends(requires(Capability.MANAGE_BOOKS)),
                books: BookLedger = Depends(get_books)):
    return books.create(book_in.model_dump())


@router.put("/books/{book_id}", response_model=schemas.BookOut)
def update_book(book_id: int, book_upd: schemas.BookUpdate,
                identity: Identity = Depends(requires(Capability.MANAGE_BOOKS)),
                books: BookLedger = Depends(get_books)):
    return books.update(book_id, book_upd.model_dump(exclude_unset=True))


@router.delete("/books/{book_id}", response_model=schemas.MessageOut)
def delete_book(book_id: int,
                identity: Identity = Depends(requires(Capability.MANAGE_BOOKS)),
                books: BookLedger = Depends(get_books)):
    books.delete(book_id)
    return {"message": "Book deleted successfully"}


# -----------------------------
# Loans (borrow & return)
# -----------------------------
@router.post("/books/{book_id}/borrow", response_model=schemas.LoanOut, status_code=status.HTTP_201_CREATED)
def borrow_book(book_id: int,
                identity: Identity = Depends(requires(Capability.BORROW)),
                loans: LoanManager = Depends(get_loans)):
    return loans.borrow(identity, book_id)


@router.get("/borrowed-books", response_model=List[schemas.LoanOut])
def my_borrowed_books(identity: Identity = Depends(requires(Capability.VIEW_OWN_LOANS)),
                      loans: LoanManager = Depends(get_loans)):
    return loans.list_active_for_user(identity.user_id)


@router.post("/borrowed-books/{loan_id}/return", response_model=schemas.LoanOut)
def return_book(loan_id: int,
                identity: Identity = Depends(requires(Capability.RETURN_OWN)),
                loans: LoanManager = Depends(get_loans)):
    return loans.return_loan(identity, loan_id)


# -----------------------------
# Admin
# -----------------------------
@router.get("/admin/borrowed-books", response_model=List[schemas.AdminLoanOut])
def all_borrowed_books(identity: Identity = Depends(requires(Capability.VIEW_ALL_LOANS)),
                       loans: LoanManager = Depends(get_loans)):
    return loans.list_all_active()


@router.get("/admin/users", response_model=List[schemas.UserOut])
def list_users(identity: Identity = Depends(requires(Capability.VIEW_USERS)),
               accounts: CredentialStore = Depends(get_accounts)):
    return accounts.list_users()
