import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from library_dashboard.core.config import settings
from library_dashboard.core.errors import (AlreadyReturned, BookNotFound, BookUnavailable,
                                           BorrowingNotFound, UserNotFound, InvalidRequest)
from library_dashboard.models.models import Book, Borrowing, User, utcnow

logger = logging.getLogger(__name__)


class LoanService:
    """Borrow/return lifecycle of a book loan.

    Each operation is a single transaction built on a conditional update, so
    ``Book.available`` is false exactly while an open borrowing references the
    book, even when two requests race for the same book.
    """

    @staticmethod
    def borrow_book(db: Session, book_id: int, user_id: int, due_days: Optional[int] = None) -> Borrowing:
        days = settings.default_due_days if due_days is None else due_days
        if not 1 <= days <= settings.max_due_days:
            raise InvalidRequest(f"due_days must be between 1 and {settings.max_due_days}")

        if not db.query(User.id).filter(User.id == user_id).first():
            raise UserNotFound()

        now = utcnow()
        try:
            taken = db.execute(
                update(Book)
                .where(Book.id == book_id, Book.available == True)
                .values(available=False, updated_at=now)
                .execution_options(synchronize_session=False)
            ).rowcount
            if taken == 0:
                if db.query(Book.id).filter(Book.id == book_id).first():
                    raise BookUnavailable()
                raise BookNotFound()

            borrowing = Borrowing(
                book_id=book_id,
                user_id=user_id,
                borrowed_at=now,
                due_date=now + timedelta(days=days),
            )
            db.add(borrowing)
            db.commit()
        except IntegrityError:
            # the partial unique index caught a concurrent open borrowing
            db.rollback()
            raise BookUnavailable()
        except Exception:
            db.rollback()
            raise

        db.refresh(borrowing)
        logger.info(f"User {user_id} borrowed book {book_id} borrowing {borrowing.id} due {borrowing.due_date}")
        return borrowing

    @staticmethod
    def return_book(db: Session, borrowing_id: int) -> Borrowing:
        borrowing = db.query(Borrowing).filter(Borrowing.id == borrowing_id).first()
        if not borrowing:
            raise BorrowingNotFound()
        if borrowing.returned_at is not None:
            raise AlreadyReturned()

        now = utcnow()
        try:
            closed = db.execute(
                update(Borrowing)
                .where(Borrowing.id == borrowing_id, Borrowing.returned_at.is_(None))
                .values(returned_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            ).rowcount
            if closed == 0:
                raise AlreadyReturned()
            db.execute(
                update(Book)
                .where(Book.id == borrowing.book_id)
                .values(available=True, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(borrowing)
        logger.info(f"Borrowing {borrowing_id} returned, book {borrowing.book_id} available")
        return borrowing
