import asyncio
import logging
from typing import Any, Dict, List, Optional

from library_dashboard.client.api import ApiError, LibraryClient

logger = logging.getLogger(__name__)


class Dashboard:
    """List and form state of the staff dashboard.

    A failed request never clears the lists already loaded; it only sets
    ``error``, the banner text shown next to the form that triggered it.
    Nothing is retried automatically.
    """

    def __init__(self, client: LibraryClient):
        self.client = client
        self.authors: List[Dict[str, Any]] = []
        self.books: List[Dict[str, Any]] = []
        self.users: List[Dict[str, Any]] = []
        self.borrowings: List[Dict[str, Any]] = []
        self.book_filters: Dict[str, Any] = {}
        self.error = ""
        self.loading = False

    @property
    def available_books(self):
        return [b for b in self.books if b["available"]]

    @property
    def active_borrowings(self):
        return [b for b in self.borrowings if not b["returned_at"]]

    @property
    def returned_borrowings(self):
        return [b for b in self.borrowings if b["returned_at"]]

    async def refresh(self) -> bool:
        self.loading = True
        try:
            results = await asyncio.gather(
                self.client.authors.get_all(),
                self.client.books.get_all(**self.book_filters),
                self.client.users.get_all(),
                self.client.borrowings.get_all(),
                return_exceptions=True,
            )
        finally:
            self.loading = False
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, ApiError):
                raise result
        failures = [r for r in results if isinstance(r, ApiError)]
        if failures:
            self.error = failures[0].message
            return False
        self.authors, self.books, self.users, self.borrowings = results
        return True

    async def set_book_filters(self, author_id: Optional[int] = None, available: Optional[bool] = None,
                               search: Optional[str] = None) -> bool:
        """Store the book list filters and reload only the books."""
        self.book_filters = {k: v for k, v in
                             {"author_id": author_id, "available": available, "search": search}.items()
                             if v is not None and v != ""}
        self.error = ""
        try:
            self.books = await self.client.books.get_all(**self.book_filters)
        except ApiError as e:
            self.error = e.message
            return False
        return True

    async def _submit(self, call, *args, **kwargs) -> Optional[Any]:
        self.error = ""
        try:
            result = await call(*args, **kwargs)
        except ApiError as e:
            logger.info(f"Dashboard action failed: {e.message}")
            self.error = e.message
            return None
        await self.refresh()
        return result

    async def create_author(self, name: str, bio: str = ""):
        return await self._submit(self.client.authors.create, name, bio)

    async def update_author(self, author_id: int, **fields):
        return await self._submit(self.client.authors.update, author_id, **fields)

    async def delete_author(self, author_id: int):
        return await self._submit(self.client.authors.delete, author_id)

    async def create_book(self, title: str, isbn: str, author_id: int, description: str = "",
                          published_year: Optional[int] = None):
        return await self._submit(self.client.books.create, title, isbn, author_id,
                                  description, published_year)

    async def update_book(self, book_id: int, **fields):
        return await self._submit(self.client.books.update, book_id, **fields)

    async def delete_book(self, book_id: int):
        return await self._submit(self.client.books.delete, book_id)

    async def create_user(self, email: str, password: str, full_name: str = ""):
        return await self._submit(self.client.users.create, email, password, full_name)

    async def borrow(self, book_id: int, user_id: int, due_days: Optional[int] = None):
        return await self._submit(self.client.borrowings.borrow, book_id, user_id, due_days)

    async def return_borrowing(self, borrowing_id: int):
        return await self._submit(self.client.borrowings.return_book, borrowing_id)
