"""Async HTTP client for the library dashboard REST API.

Each resource group mirrors one REST collection. Every non-2xx response is
raised as :class:`ApiError` carrying the server's ``error`` string, or a fixed
fallback message when the body has none.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return fallback


def _params(**kwargs) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None and v != ""}


class _Resource:
    def __init__(self, client: "LibraryClient"):
        self._client = client


class AuthorsApi(_Resource):
    async def get_all(self) -> List[Dict[str, Any]]:
        return await self._client.request("GET", "/authors", "Failed to fetch authors")

    async def get_by_id(self, author_id: int) -> Dict[str, Any]:
        return await self._client.request("GET", f"/authors/{author_id}", "Failed to fetch author")

    async def create(self, name: str, bio: str = "") -> Dict[str, Any]:
        return await self._client.request("POST", "/authors", "Failed to create author",
                                          json={"name": name, "bio": bio})

    async def update(self, author_id: int, **fields) -> Dict[str, Any]:
        return await self._client.request("PUT", f"/authors/{author_id}", "Failed to update author",
                                          json=fields)

    async def delete(self, author_id: int) -> Dict[str, Any]:
        return await self._client.request("DELETE", f"/authors/{author_id}", "Failed to delete author")


class BooksApi(_Resource):
    async def get_all(self, author_id: Optional[int] = None, available: Optional[bool] = None,
                      search: Optional[str] = None) -> List[Dict[str, Any]]:
        params = _params(author_id=author_id, available=available, search=search)
        return await self._client.request("GET", "/books", "Failed to fetch books", params=params)

    async def get_by_id(self, book_id: int) -> Dict[str, Any]:
        return await self._client.request("GET", f"/books/{book_id}", "Failed to fetch book")

    async def create(self, title: str, isbn: str, author_id: int, description: str = "",
                     published_year: Optional[int] = None) -> Dict[str, Any]:
        payload = {"title": title, "isbn": isbn, "author_id": author_id,
                   "description": description, "published_year": published_year}
        return await self._client.request("POST", "/books", "Failed to create book", json=payload)

    async def update(self, book_id: int, **fields) -> Dict[str, Any]:
        return await self._client.request("PUT", f"/books/{book_id}", "Failed to update book", json=fields)

    async def delete(self, book_id: int) -> Dict[str, Any]:
        return await self._client.request("DELETE", f"/books/{book_id}", "Failed to delete book")


class UsersApi(_Resource):
    async def get_all(self) -> List[Dict[str, Any]]:
        return await self._client.request("GET", "/users", "Failed to fetch users")

    async def get_by_id(self, user_id: int) -> Dict[str, Any]:
        return await self._client.request("GET", f"/users/{user_id}", "Failed to fetch user")

    async def create(self, email: str, password: str, full_name: str = "") -> Dict[str, Any]:
        payload = {"email": email, "password": password, "full_name": full_name}
        return await self._client.request("POST", "/users", "Failed to create user", json=payload)


class BorrowingsApi(_Resource):
    async def get_all(self, user_id: Optional[int] = None, active_only: bool = False) -> List[Dict[str, Any]]:
        params = _params(user_id=user_id, active_only=True if active_only else None)
        return await self._client.request("GET", "/borrowings", "Failed to fetch borrowings", params=params)

    async def borrow(self, book_id: int, user_id: int, due_days: Optional[int] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"book_id": book_id, "user_id": user_id}
        if due_days is not None:
            payload["due_days"] = due_days
        return await self._client.request("POST", "/borrowings/borrow", "Failed to borrow book", json=payload)

    async def return_book(self, borrowing_id: int) -> Dict[str, Any]:
        return await self._client.request("POST", "/borrowings/return", "Failed to return book",
                                          json={"borrowing_id": borrowing_id})


class LibraryClient:
    def __init__(self, base_url: str, token: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 10.0):
        self.token = token
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.authors = AuthorsApi(self)
        self.books = BooksApi(self)
        self.users = UsersApi(self)
        self.borrowings = BorrowingsApi(self)

    async def login(self, email: str, password: str) -> str:
        body = await self.request("POST", "/auth/login", "Failed to sign in",
                                  json={"email": email, "password": password})
        self.token = body["access_token"]
        return self.token

    def logout(self):
        self.token = None

    async def me(self) -> Dict[str, Any]:
        return await self.request("GET", "/auth/me", "Failed to fetch profile")

    async def request(self, method: str, path: str, fallback: str, **kwargs) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(fallback) from e
        if response.is_error:
            raise ApiError(_error_message(response, fallback), response.status_code)
        return response.json() if response.content else None

    async def aclose(self):
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
