"""Exception hierarchy for the relay core and the book storage layer."""


class RelayError(Exception):
    """Base exception for coordination errors."""

    pass


class MalformedEnvelopeError(RelayError):
    """Raised when an inbound frame is not a usable message envelope."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Malformed envelope: {detail}")


class DuplicateWorkError(RelayError):
    """Raised when a work key is already queued or in flight."""

    def __init__(self, work_key: str) -> None:
        self.work_key = work_key
        super().__init__(f"Work with key '{work_key}' is already queued or in flight")


class UnknownConnectionError(RelayError):
    """Raised when an operation references a connection that is not registered."""

    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        super().__init__(f"Connection '{connection_id}' is not registered")


class StorageError(Exception):
    """Base exception for settings and book folder storage."""

    pass


class BooksDirectoryNotSetError(StorageError):
    def __init__(self) -> None:
        super().__init__("Books directory path is not set.")


class InvalidBookNameError(StorageError):
    def __init__(self, book_name: str) -> None:
        self.book_name = book_name
        super().__init__(f"Invalid book name: {book_name!r}")


class BookAlreadyExistsError(StorageError):
    def __init__(self, book_name: str) -> None:
        self.book_name = book_name
        super().__init__(f'A book folder named "{book_name}" already exists.')
