from pydantic import BaseModel, ConfigDict, Field, constr, field_validator
from datetime import datetime
from typing import Annotated, Optional

from library_dashboard.core.config import settings


# largest value a 64-bit INTEGER primary key can hold
MAX_ID = 2**63 - 1
RecordId = Annotated[int, Field(le=MAX_ID)]


def _plausible_year(v):
    if v is not None and not 0 < v <= datetime.now().year + 1:
        raise ValueError('published_year is out of range')
    return v


class AuthorBase(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    bio: str = ""

class AuthorCreate(AuthorBase):
    pass

class AuthorUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    bio: Optional[str] = None

class AuthorOut(AuthorBase):
    model_config = ConfigDict(from_attributes=True)
    id: int
    created_at: datetime
    updated_at: datetime

class BookBase(BaseModel):
    title: constr(strip_whitespace=True, min_length=1)
    isbn: constr(strip_whitespace=True, min_length=1)
    author_id: RecordId
    description: str = ""
    published_year: Optional[int] = None

    @field_validator('published_year')
    @classmethod
    def ensure_plausible_year(cls, v):
        return _plausible_year(v)

class BookCreate(BookBase):
    pass

class BookUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=1)] = None
    isbn: Optional[constr(strip_whitespace=True, min_length=1)] = None
    author_id: Optional[RecordId] = None
    description: Optional[str] = None
    published_year: Optional[int] = None

    @field_validator('published_year')
    @classmethod
    def ensure_plausible_year(cls, v):
        return _plausible_year(v)

class BookOut(BookBase):
    model_config = ConfigDict(from_attributes=True)
    id: int
    available: bool
    created_at: datetime
    updated_at: datetime
    author: Optional[AuthorOut] = None

class UserBase(BaseModel):
    email: constr(strip_whitespace=True, to_lower=True, min_length=3, pattern=r".+@.+")
    full_name: constr(strip_whitespace=True) = ""

class UserCreate(UserBase):
    password: constr(min_length=6)

class UserOut(UserBase):
    model_config = ConfigDict(from_attributes=True)
    id: int
    created_at: datetime
    updated_at: datetime

class BorrowRequest(BaseModel):
    book_id: RecordId
    user_id: RecordId
    due_days: int = Field(default=settings.default_due_days, ge=1, le=settings.max_due_days)

class ReturnRequest(BaseModel):
    borrowing_id: RecordId

class BorrowingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    book_id: int
    user_id: int
    borrowed_at: datetime
    due_date: datetime
    returned_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    book: Optional[BookOut] = None
    user: Optional[UserOut] = None

class LoginRequest(BaseModel):
    email: constr(strip_whitespace=True, to_lower=True, min_length=1)
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
