"""Request/response bodies for the settings and book folder endpoints."""

from typing import Any

from pydantic import Field

from chapter_relay.contracts.messages import WireModel


class WriteSettingRequest(WireModel):
    key: str = Field(min_length=1)
    value: Any = None


class SetBooksDirectoryRequest(WireModel):
    path: str | None = None


class BookNameRequest(WireModel):
    book_name: str | None = None


class SaveBookRequest(WireModel):
    book_name: str | None = None
    book_data: dict[str, Any] = Field(default_factory=dict)


class ImportBooksRequest(WireModel):
    books_dir_path: str | None = None


class SuccessResponse(WireModel):
    success: bool = True
    message: str | None = None


class CreateBookResponse(WireModel):
    success: bool = True
    path: str


__all__ = [
    "WriteSettingRequest",
    "SetBooksDirectoryRequest",
    "BookNameRequest",
    "SaveBookRequest",
    "ImportBooksRequest",
    "SuccessResponse",
    "CreateBookResponse",
]
