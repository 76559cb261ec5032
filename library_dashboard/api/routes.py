import logging
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Annotated, List, Optional

from library_dashboard.core.database import get_db
from library_dashboard.core.errors import (AuthorHasBooks, AuthorNotFound, BookNotFound, BookOnLoan,
                                           DuplicateEmail, DuplicateIsbn, UserNotFound)
from library_dashboard.core.security import get_current_user, hash_password
from library_dashboard.models import models
from library_dashboard.schemas import schemas
from library_dashboard.services.loans import LoanService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])

IdPath = Annotated[int, Path(le=schemas.MAX_ID)]
IdQuery = Annotated[Optional[int], Query(le=schemas.MAX_ID)]


def _get_author(db: Session, author_id: int) -> models.Author:
    author = db.query(models.Author).filter(models.Author.id == author_id).first()
    if not author:
        raise AuthorNotFound()
    return author

def _get_book(db: Session, book_id: int) -> models.Book:
    book = db.query(models.Book).filter(models.Book.id == book_id).first()
    if not book:
        raise BookNotFound()
    return book

def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

def _ensure_isbn_free(db: Session, isbn: str, book_id: Optional[int] = None):
    query = db.query(models.Book).filter(models.Book.isbn == isbn)
    if book_id is not None:
        query = query.filter(models.Book.id != book_id)
    if query.first():
        raise DuplicateIsbn()

# -----------------------------
# Authors
# -----------------------------
@router.get("/authors", response_model=List[schemas.AuthorOut])
def list_authors(db: Session = Depends(get_db)):
    return db.query(models.Author).order_by(models.Author.name).all()

@router.get("/authors/{author_id}", response_model=schemas.AuthorOut)
def read_author(author_id: IdPath, db: Session = Depends(get_db)):
    return _get_author(db, author_id)

@router.post("/authors", response_model=schemas.AuthorOut, status_code=201)
def create_author(author_in: schemas.AuthorCreate, db: Session = Depends(get_db)):
    author = models.Author(name=author_in.name, bio=author_in.bio)
    db.add(author)
    db.commit()
    db.refresh(author)
    logger.info(f"Created author id={author.id} name={author.name}")
    return author

@router.put("/authors/{author_id}", response_model=schemas.AuthorOut)
def update_author(author_id: IdPath, author_upd: schemas.AuthorUpdate, db: Session = Depends(get_db)):
    author = _get_author(db, author_id)
    for k, v in author_upd.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(author, k, v)
    db.commit()
    db.refresh(author)
    logger.info(f"Updated author id={author.id}")
    return author

@router.delete("/authors/{author_id}")
def delete_author(author_id: IdPath, db: Session = Depends(get_db)):
    author = _get_author(db, author_id)
    if db.query(models.Book).filter(models.Book.author_id == author.id).count() > 0:
        raise AuthorHasBooks()
    db.delete(author)
    db.commit()
    logger.info(f"Deleted author id={author_id}")
    return {"ok": True}

# -----------------------------
# Books
# -----------------------------
@router.get("/books", response_model=List[schemas.BookOut])
def list_books(author_id: IdQuery = None,
               available: Optional[bool] = None,
               search: Optional[str] = Query(None, description="search title, isbn or description"),
               db: Session = Depends(get_db)):
    query = db.query(models.Book)
    if author_id is not None:
        query = query.filter(models.Book.author_id == author_id)
    if available is not None:
        query = query.filter(models.Book.available == available)
    if search:
        like_q = f"%{_escape_like(search.strip())}%"
        query = query.filter(or_(models.Book.title.ilike(like_q, escape="\\"),
                                 models.Book.isbn.ilike(like_q, escape="\\"),
                                 models.Book.description.ilike(like_q, escape="\\")))
    return query.order_by(models.Book.title).all()

@router.get("/books/{book_id}", response_model=schemas.BookOut)
def read_book(book_id: IdPath, db: Session = Depends(get_db)):
    return _get_book(db, book_id)

@router.post("/books", response_model=schemas.BookOut, status_code=201)
def create_book(book_in: schemas.BookCreate, db: Session = Depends(get_db)):
    _get_author(db, book_in.author_id)
    _ensure_isbn_free(db, book_in.isbn)
    book = models.Book(
        title=book_in.title,
        isbn=book_in.isbn,
        author_id=book_in.author_id,
        description=book_in.description,
        published_year=book_in.published_year,
        available=True,
    )
    db.add(book)
    db.commit()
    db.refresh(book)
    logger.info(f"Created book id={book.id} title={book.title}")
    return book

@router.put("/books/{book_id}", response_model=schemas.BookOut)
def update_book(book_id: IdPath, book_upd: schemas.BookUpdate, db: Session = Depends(get_db)):
    book = _get_book(db, book_id)
    data = book_upd.model_dump(exclude_unset=True)
    # published_year is the only field that may be cleared
    data = {k: v for k, v in data.items() if v is not None or k == "published_year"}
    if "author_id" in data:
        _get_author(db, data["author_id"])
    if "isbn" in data:
        _ensure_isbn_free(db, data["isbn"], book_id=book.id)
    for k, v in data.items():
        setattr(book, k, v)
    db.commit()
    db.refresh(book)
    logger.info(f"Updated book id={book.id}")
    return book

@router.delete("/books/{book_id}")
def delete_book(book_id: IdPath, db: Session = Depends(get_db)):
    book = _get_book(db, book_id)
    open_borrowings = db.query(models.Borrowing).filter(
        models.Borrowing.book_id == book.id, models.Borrowing.returned_at.is_(None)).count()
    if open_borrowings > 0:
        raise BookOnLoan()
    if db.query(models.Borrowing).filter(models.Borrowing.book_id == book.id).count() > 0:
        raise BookOnLoan("Cannot delete book with borrowing history")
    db.delete(book)
    db.commit()
    logger.info(f"Deleted book id={book_id}")
    return {"ok": True}

# -----------------------------
# Users
# -----------------------------
@router.get("/users", response_model=List[schemas.UserOut])
def list_users(db: Session = Depends(get_db)):
    return db.query(models.User).order_by(models.User.full_name, models.User.email).all()

@router.get("/users/{user_id}", response_model=schemas.UserOut)
def read_user(user_id: IdPath, db: Session = Depends(get_db)):
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise UserNotFound()
    return user

@router.post("/users", response_model=schemas.UserOut, status_code=201)
def create_user(user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    existing = db.query(models.User).filter(models.User.email == user_in.email).first()
    if existing:
        raise DuplicateEmail()
    user = models.User(email=user_in.email, full_name=user_in.full_name,
                       password_hash=hash_password(user_in.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user id={user.id} email={user.email}")
    return user

# -----------------------------
# Borrowings (borrow & return)
# -----------------------------
@router.get("/borrowings", response_model=List[schemas.BorrowingOut])
def list_borrowings(user_id: IdQuery = None, active_only: bool = False, db: Session = Depends(get_db)):
    query = db.query(models.Borrowing)
    if user_id is not None:
        query = query.filter(models.Borrowing.user_id == user_id)
    if active_only:
        query = query.filter(models.Borrowing.returned_at.is_(None))
    return query.order_by(models.Borrowing.borrowed_at.desc(), models.Borrowing.id.desc()).all()

@router.post("/borrowings/borrow", response_model=schemas.BorrowingOut, status_code=201)
def borrow_book(request: schemas.BorrowRequest, db: Session = Depends(get_db)):
    return LoanService.borrow_book(db, request.book_id, request.user_id, request.due_days)

@router.post("/borrowings/return", response_model=schemas.BorrowingOut)
def return_book(request: schemas.ReturnRequest, db: Session = Depends(get_db)):
    return LoanService.return_book(db, request.borrowing_id)
