"""
CaseDossier Document Readers

Raw text extraction from PDF or DOCX happens outside this package. A
reader only has to return decoded, normalized text; the readers here
cover plain-text files and in-memory ``(path, bytes)`` inputs.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional, Protocol, Union, runtime_checkable

from ..canon import normalize_document_text
from ..config import DEFAULT_MAX_DOCUMENT_BYTES
from ..exceptions import InputTooLargeError, InputUnreadableError
from ..models import ReadResult


@runtime_checkable
class DocumentReader(Protocol):
    """
    Protocol for document readers.

    ``read`` returns a ReadResult or raises InputTooLargeError /
    InputUnreadableError. Readers may be called from several worker
    threads at once.
    """

    def read(self, path: str) -> ReadResult:
        ...


def decode_document(
    data: bytes,
    path: str,
    max_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES,
    metadata: Optional[dict[str, Any]] = None,
) -> ReadResult:
    """
    Decode raw bytes as UTF-8 and normalize the text.

    Raises:
        InputTooLargeError: If data exceeds max_bytes
        InputUnreadableError: If data is not valid UTF-8
    """
    if len(data) > max_bytes:
        raise InputTooLargeError(
            message=f"Document is {len(data)} bytes; limit is {max_bytes}",
            details={"path": path, "sizeBytes": len(data), "maxBytes": max_bytes},
        )
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InputUnreadableError(
            message=f"Document is not valid UTF-8: {e.reason} at byte {e.start}",
            details={"path": path},
        )
    if text.startswith("\ufeff"):
        text = text[1:]
    text = normalize_document_text(text)
    return ReadResult(
        text=text,
        page_count=text.count("\f") + 1,
        metadata=dict(metadata or {}),
    )


class PlainTextReader:
    """
    Reads UTF-8 text files from disk.

    The size limit is checked against the file size before the file is
    read, so oversized inputs are never loaded.
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES):
        self.max_bytes = max_bytes

    def read(self, path: str) -> ReadResult:
        file_path = Path(path)
        try:
            size = file_path.stat().st_size
        except OSError as e:
            raise InputUnreadableError(
                message=f"Cannot read document: {e.strerror or e}",
                details={"path": str(path)},
            )
        if size > self.max_bytes:
            raise InputTooLargeError(
                message=f"Document is {size} bytes; limit is {self.max_bytes}",
                details={"path": str(path), "sizeBytes": size, "maxBytes": self.max_bytes},
            )
        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise InputUnreadableError(
                message=f"Cannot read document: {e.strerror or e}",
                details={"path": str(path)},
            )
        return decode_document(data, str(path), self.max_bytes)


class InMemoryReader:
    """
    Serves documents given as ``(path, bytes)`` tuples.

    Usage:
        reader = InMemoryReader([("letter.txt", b"Dear Jane Q. Doe, ...")])
        result = reader.read("letter.txt")
    """

    def __init__(
        self,
        documents: Iterable[tuple[str, bytes]] = (),
        max_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES,
        metadata: Optional[dict[str, dict[str, Any]]] = None,
    ):
        self.max_bytes = max_bytes
        self._documents: dict[str, bytes] = {}
        self._metadata = dict(metadata or {})
        for path, data in documents:
            self.add(path, data)

    def add(self, path: str, data: Union[bytes, str]) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._documents[str(path)] = data

    def read(self, path: str) -> ReadResult:
        try:
            data = self._documents[str(path)]
        except KeyError:
            raise InputUnreadableError(
                message=f"No in-memory document named {path!r}",
                details={"path": str(path)},
            )
        return decode_document(data, str(path), self.max_bytes, self._metadata.get(str(path)))
