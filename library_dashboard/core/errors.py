class LibraryError(Exception):
    """Base exception for library errors; ``status_code`` is the HTTP mapping."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(LibraryError):
    status_code = 404
    default_message = "Not found"


class ConflictError(LibraryError):
    status_code = 409
    default_message = "Conflict"


class InvalidRequest(LibraryError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(LibraryError):
    status_code = 401
    default_message = "Not authenticated"


class AuthorNotFound(NotFoundError):
    default_message = "Author not found"


class BookNotFound(NotFoundError):
    default_message = "Book not found"


class UserNotFound(NotFoundError):
    default_message = "User not found"


class BorrowingNotFound(NotFoundError):
    default_message = "Borrowing not found"


class BookUnavailable(ConflictError):
    default_message = "Book is not available"


class AlreadyReturned(ConflictError):
    default_message = "Book has already been returned"


class DuplicateIsbn(ConflictError):
    default_message = "ISBN already exists"


class DuplicateEmail(ConflictError):
    default_message = "Email already registered"


class AuthorHasBooks(ConflictError):
    default_message = "Cannot delete author with books"


class BookOnLoan(ConflictError):
    default_message = "Cannot delete book with an open borrowing"
