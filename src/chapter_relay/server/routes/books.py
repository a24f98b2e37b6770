"""Book folder routes.

All paths are resolved under the books directory remembered in the settings
store; ``/fs/import-books`` and ``/fs/set-books-directory`` set it.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from chapter_relay.contracts import (
    BookNameRequest,
    CreateBookResponse,
    ImportBooksRequest,
    SaveBookRequest,
    SetBooksDirectoryRequest,
    SuccessResponse,
)
from chapter_relay.errors import (
    BookAlreadyExistsError,
    BooksDirectoryNotSetError,
    InvalidBookNameError,
    StorageError,
)
from chapter_relay.server.depends import get_library
from chapter_relay.storage import BookLibrary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fs", tags=["books"])


def _require_book_name(book_name: str | None) -> str:
    if not book_name:
        raise HTTPException(status_code=400, detail="Book name is required.")
    return book_name


def _storage_http_error(exc: StorageError) -> HTTPException:
    if isinstance(exc, BookAlreadyExistsError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, BooksDirectoryNotSetError | InvalidBookNameError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@router.post("/set-books-directory", response_model=SuccessResponse, response_model_exclude_none=True)
async def set_books_directory(
    body: SetBooksDirectoryRequest, library: BookLibrary = Depends(get_library)
) -> SuccessResponse:
    if not body.path:
        raise HTTPException(status_code=400, detail="A valid path is required.")
    try:
        await asyncio.to_thread(library.set_books_dir, body.path)
    except StorageError as e:
        raise _storage_http_error(e) from e
    return SuccessResponse()


@router.post("/create-book", response_model=CreateBookResponse, status_code=201)
async def create_book(
    body: BookNameRequest, library: BookLibrary = Depends(get_library)
) -> CreateBookResponse:
    if library.books_dir is None:
        raise HTTPException(status_code=400, detail="Books directory path is not set.")
    book_name = _require_book_name(body.book_name)
    try:
        path = await asyncio.to_thread(library.create_book, book_name)
    except StorageError as e:
        logger.error(f"Failed to create book folder for {book_name}: {e}")
        raise _storage_http_error(e) from e
    return CreateBookResponse(path=str(path))


@router.post("/save-book", response_model=SuccessResponse)
async def save_book(
    body: SaveBookRequest, library: BookLibrary = Depends(get_library)
) -> SuccessResponse:
    if library.books_dir is None or not body.book_name:
        raise HTTPException(
            status_code=400, detail="Missing book directory path or book name."
        )
    try:
        await asyncio.to_thread(library.save_book_folder, body.book_name, body.book_data)
    except StorageError as e:
        logger.error(f"Failed to save book data for {body.book_name}: {e}")
        raise _storage_http_error(e) from e
    return SuccessResponse(message=f'Book "{body.book_name}" saved successfully.')


@router.post("/import-books")
async def import_books(
    body: ImportBooksRequest, library: BookLibrary = Depends(get_library)
) -> dict[str, Any]:
    """Load every book folder in the directory, keyed by folder name."""
    if not body.books_dir_path:
        raise HTTPException(status_code=400, detail="Directory path is required.")
    try:
        return await asyncio.to_thread(library.import_books, body.books_dir_path)
    except StorageError as e:
        logger.error(f"Import failed: {e}")
        raise _storage_http_error(e) from e


@router.post("/delete-book", response_model=SuccessResponse)
async def delete_book(
    body: BookNameRequest, library: BookLibrary = Depends(get_library)
) -> SuccessResponse:
    book_name = _require_book_name(body.book_name)
    if library.books_dir is None:
        raise HTTPException(
            status_code=400, detail="Books directory path is not configured."
        )
    try:
        await asyncio.to_thread(library.delete_book, book_name)
    except StorageError as e:
        logger.error(f"Failed to delete book folder {book_name}: {e}")
        raise _storage_http_error(e) from e
    return SuccessResponse(message=f"Deleted book folder: {book_name}")


@router.post("/delete-raw-chapters", response_model=SuccessResponse)
async def delete_raw_chapters(
    body: BookNameRequest, library: BookLibrary = Depends(get_library)
) -> SuccessResponse:
    if library.books_dir is None or not body.book_name:
        raise HTTPException(
            status_code=400, detail="Missing book directory path or book name."
        )
    try:
        deleted = await asyncio.to_thread(library.delete_raw_chapters, body.book_name)
    except StorageError as e:
        logger.error(f"Failed to delete raw chapters file for {body.book_name}: {e}")
        raise _storage_http_error(e) from e
    if not deleted:
        return SuccessResponse(message="Raw chapters file not found, nothing to delete.")
    return SuccessResponse(message=f'Raw chapters file for "{body.book_name}" deleted.')
