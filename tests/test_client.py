import asyncio

import httpx
import pytest

from library_dashboard.client.api import ApiError, LibraryClient
from library_dashboard.client.dashboard import Dashboard
from library_dashboard.main import app


def make_client(token=None):
    return LibraryClient("http://testserver", token=token, transport=httpx.ASGITransport(app=app))


def run(coro):
    return asyncio.run(coro)


def test_login_then_crud_roundtrip(staff):
    async def scenario():
        async with make_client() as client:
            token = await client.login("staff@example.com", "secret123")
            assert token == client.token
            assert (await client.me())["email"] == "staff@example.com"

            author = await client.authors.create("Stanisław Lem", "Solaris")
            book = await client.books.create("Solaris", "978-0156027601", author["id"], published_year=1961)
            assert book["author"]["name"] == "Stanisław Lem"
            assert await client.books.get_all(available=True, search="solaris") == [book]
            assert await client.books.get_all(author_id=author["id"] + 1) == []
            updated = await client.authors.update(author["id"], bio="Solaris, The Cyberiad")
            assert updated["bio"] == "Solaris, The Cyberiad"
            assert (await client.books.update(book["id"], title="Solaris (1961)"))["title"] == "Solaris (1961)"
            assert await client.books.delete(book["id"]) == {"ok": True}
            assert await client.authors.delete(author["id"]) == {"ok": True}

    run(scenario())

def test_errors_carry_server_message(auth_headers):
    token = auth_headers["Authorization"].split()[1]

    async def scenario():
        async with make_client(token) as client:
            with pytest.raises(ApiError) as exc:
                await client.borrowings.return_book(12345)
            assert exc.value.message == "Borrowing not found"
            assert exc.value.status_code == 404

            client.logout()
            with pytest.raises(ApiError) as exc:
                await client.authors.get_all()
            assert exc.value.status_code == 401

    run(scenario())

def test_fallback_message_when_body_has_no_error():
    def handler(request):
        return httpx.Response(500, text="upstream exploded")

    async def scenario():
        client = LibraryClient("http://testserver", token="t", transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(ApiError) as exc:
                await client.users.get_all()
        finally:
            await client.aclose()
        assert exc.value.message == "Failed to fetch users"
        assert exc.value.status_code == 500

    run(scenario())

def test_bearer_token_and_filters_are_sent():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    async def scenario():
        client = LibraryClient("http://testserver", token="abc", transport=httpx.MockTransport(handler))
        try:
            await client.borrowings.get_all(user_id=3, active_only=True)
            await client.books.get_all(available=False)
        finally:
            await client.aclose()

    run(scenario())
    assert seen[0].headers["Authorization"] == "Bearer abc"
    assert dict(seen[0].url.params) == {"user_id": "3", "active_only": "true"}
    assert dict(seen[1].url.params) == {"available": "false"}

def test_dashboard_borrow_and_return(auth_headers, member, book):
    token = auth_headers["Authorization"].split()[1]

    async def scenario():
        async with make_client(token) as client:
            dashboard = Dashboard(client)
            assert await dashboard.refresh() is True
            assert [b["id"] for b in dashboard.available_books] == [book["id"]]
            assert len(dashboard.users) == 2

            loan = await dashboard.borrow(book["id"], member["id"])
            assert dashboard.error == ""
            assert [b["id"] for b in dashboard.active_borrowings] == [loan["id"]]
            assert dashboard.available_books == []

            again = await dashboard.borrow(book["id"], member["id"])
            assert again is None
            assert dashboard.error == "Book is not available"
            assert len(dashboard.borrowings) == 1

            await dashboard.return_borrowing(loan["id"])
            assert dashboard.error == ""
            assert dashboard.active_borrowings == []
            assert [b["id"] for b in dashboard.returned_borrowings] == [loan["id"]]

            await dashboard.return_borrowing(loan["id"])
            assert dashboard.error == "Book has already been returned"

    run(scenario())

def test_dashboard_keeps_lists_when_refresh_fails(auth_headers, author):
    token = auth_headers["Authorization"].split()[1]

    async def scenario():
        async with make_client(token) as client:
            dashboard = Dashboard(client)
            await dashboard.refresh()
            assert [a["id"] for a in dashboard.authors] == [author["id"]]

            client.token = "expired"
            assert await dashboard.refresh() is False
            assert dashboard.error == "Invalid or expired session token"
            assert [a["id"] for a in dashboard.authors] == [author["id"]]
            assert dashboard.loading is False

    run(scenario())

def test_dashboard_form_errors_are_plain_messages(auth_headers, author, book):
    token = auth_headers["Authorization"].split()[1]

    async def scenario():
        async with make_client(token) as client:
            dashboard = Dashboard(client)
            assert await dashboard.create_book("Dup", book["isbn"], author["id"]) is None
            assert dashboard.error == "ISBN already exists"

            assert await dashboard.delete_author(author["id"]) is None
            assert dashboard.error == "Cannot delete author with books"

            created = await dashboard.create_author("Jorge Luis Borges")
            assert dashboard.error == ""
            assert created["name"] in [a["name"] for a in dashboard.authors]

            user = await dashboard.create_user("new@example.com", "longenough", "New Member")
            assert user["full_name"] == "New Member"
            assert await dashboard.update_book(book["id"], description="Ged's story") is not None
            assert [b["description"] for b in dashboard.books] == ["Ged's story"]
            assert await dashboard.update_author(author["id"], name="U. K. Le Guin") is not None
            assert await dashboard.delete_book(book["id"]) == {"ok": True}
            assert dashboard.books == []

    run(scenario())

def test_network_failure_becomes_api_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        dashboard = Dashboard(LibraryClient("http://testserver", token="t",
                                            transport=httpx.MockTransport(handler)))
        dashboard.authors = [{"id": 1, "name": "cached"}]
        try:
            assert await dashboard.refresh() is False
        finally:
            await dashboard.client.aclose()
        assert dashboard.error == "Failed to fetch authors"
        assert dashboard.authors == [{"id": 1, "name": "cached"}]

    run(scenario())

def test_dashboard_book_filters(auth_headers, author, book, member):
    token = auth_headers["Authorization"].split()[1]

    async def scenario():
        async with make_client(token) as client:
            other = await client.authors.create("Ted Chiang")
            await client.books.create("Exhalation", "978-1101947883", other["id"])
            dashboard = Dashboard(client)
            await dashboard.refresh()
            assert len(dashboard.books) == 2

            assert await dashboard.set_book_filters(search="exhal") is True
            assert dashboard.book_filters == {"search": "exhal"}
            assert [b["title"] for b in dashboard.books] == ["Exhalation"]

            await dashboard.borrow(book["id"], member["id"])
            assert [b["title"] for b in dashboard.books] == ["Exhalation"]

            await dashboard.set_book_filters(author_id=author["id"], available=False)
            assert dashboard.book_filters == {"author_id": author["id"], "available": False}
            assert [b["id"] for b in dashboard.books] == [book["id"]]

            await dashboard.set_book_filters()
            assert dashboard.book_filters == {}
            assert len(dashboard.books) == 2

            client.token = "expired"
            assert await dashboard.set_book_filters(search="none") is False
            assert dashboard.error == "Invalid or expired session token"
            assert len(dashboard.books) == 2

    run(scenario())
