from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

from booklend.models.models import LoanStatus, Role

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterIn(BaseModel):
    email: constr(strip_whitespace=True, min_length=3, pattern=EMAIL_PATTERN)
    password: constr(min_length=1)
    role: Optional[Role] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()


class LoginIn(BaseModel):
    email: constr(strip_whitespace=True, min_length=1)
    password: constr(min_length=1)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: Role
    created_at: datetime


class BookBase(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    details: constr(strip_whitespace=True, min_length=1)
    image: Optional[str] = None
    quantity: int = Field(ge=0)


class BookCreate(BookBase):
    pass


class BookUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    details: Optional[constr(strip_whitespace=True, min_length=1)] = None
    image: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)


class BookOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    details: str
    image: Optional[str] = None
    quantity: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class LoanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    book_id: Optional[int] = None
    borrowed_at: datetime
    due_date: datetime
    returned_at: Optional[datetime] = None
    status: LoanStatus
    overdue: bool
    book: Optional[BookOut] = None


class AdminLoanOut(LoanOut):
    user: Optional[UserOut] = None


class MessageOut(BaseModel):
    message: str
