# model.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple


# Результат разбора: размеры изображения и комментарии в порядке их появления в потоке
@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    comments: Tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        # Список комментариев приводится к кортежу, чтобы объект оставался неизменяемым
        object.__setattr__(self, "comments", tuple(bytes(c) for c in self.comments))


class ImageMetaError(Exception):
    """Базовое исключение пакета imgmeta."""


class ImageReadError(ImageMetaError):
    """Файл не удалось прочитать (ошибка ввода-вывода, а не формата)."""

    def __init__(self, path, cause: OSError) -> None:
        self.path = str(path)
        self.cause = cause
        super().__init__(f"IO error: {self.path}: {cause}")


class DecodingError(ImageMetaError, ValueError):
    """Данные изображения не удалось разобрать."""


class DataTooShortError(DecodingError):
    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(f"Image data too short: {length} bytes")


class UnknownMagicError(DecodingError):
    def __init__(self, magic: int) -> None:
        self.magic = magic
        super().__init__(f"Unknown magic number: 0x{magic:08x}")


class BufferOverrunError(DecodingError):
    # Попытка чтения за пределами буфера
    def __init__(self, offset: int, size: int, available: int) -> None:
        self.offset = offset
        self.size = size
        self.available = available
        super().__init__(
            f"Read of {size} bytes at offset {offset} overruns buffer ({available} bytes available)"
        )


# ------ Ошибки JPEG ------

class JpegDecodingError(DecodingError):
    pass


class NoSoiMarkerError(JpegDecodingError):
    def __init__(self) -> None:
        super().__init__("No SOI marker found")


class NoSofMarkerError(JpegDecodingError):
    """SOF не найден.

    Комментарии, собранные до остановки разбора, доступны в поле ``comments``
    для диагностики.
    """

    def __init__(self, position: int, comments: Optional[Iterable[bytes]] = None) -> None:
        self.position = position
        self.comments: List[bytes] = [bytes(c) for c in (comments or [])]
        super().__init__(f"No SOF marker found (scan stopped at position {position})")


class SofDataTooShortError(JpegDecodingError):
    def __init__(self, position: int) -> None:
        self.position = position
        super().__init__(f"SOF data is too short at position {position}")


class InvalidFrameMarkerError(JpegDecodingError):
    def __init__(self, word: int, position: int) -> None:
        self.word = word
        self.position = position
        super().__init__(
            f"Invalid frame marker: 0x{word:04x} at position {position} (0x{position:04x})"
        )


class InvalidSegmentLengthError(JpegDecodingError):
    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(f"Invalid JPEG segment length: {length}")


# ------ Ошибки PNG ------

class PngDecodingError(DecodingError):
    pass


class MissingIHDRError(PngDecodingError):
    def __init__(self) -> None:
        super().__init__("IHDR chunk missing from PNG")


class InvalidIHDRLengthError(PngDecodingError):
    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(f"Invalid IHDR chunk length: {length}")


def _type_repr(chunk_type: bytes) -> str:
    return bytes(chunk_type).decode("ascii", errors="replace")


class InvalidChunkCrcError(PngDecodingError):
    def __init__(self, chunk_type: bytes = b"", position: int = -1) -> None:
        self.chunk_type = bytes(chunk_type)
        self.position = position
        super().__init__(f"Invalid chunk CRC: {_type_repr(self.chunk_type)!r} at position {position}")


class MalformedChunkError(PngDecodingError):
    def __init__(self, chunk_type: bytes, position: int, reason: str) -> None:
        self.chunk_type = bytes(chunk_type)
        self.position = position
        super().__init__(f"Malformed {_type_repr(self.chunk_type)!r} chunk at position {position}: {reason}")


class TruncatedChunkError(MalformedChunkError):
    def __init__(self, chunk_type: bytes, position: int, length: int) -> None:
        self.length = length
        super().__init__(chunk_type, position, f"declared length {length} overruns the buffer")


class MalformedTextChunkError(MalformedChunkError):
    def __init__(self, position: int) -> None:
        super().__init__(b"tEXt", position, "missing NUL separator after keyword")


__all__ = [
    "ImageMetadata",
    "ImageMetaError",
    "ImageReadError",
    "DecodingError",
    "DataTooShortError",
    "UnknownMagicError",
    "BufferOverrunError",
    "JpegDecodingError",
    "NoSoiMarkerError",
    "NoSofMarkerError",
    "SofDataTooShortError",
    "InvalidFrameMarkerError",
    "InvalidSegmentLengthError",
    "PngDecodingError",
    "MissingIHDRError",
    "InvalidIHDRLengthError",
    "InvalidChunkCrcError",
    "MalformedChunkError",
    "TruncatedChunkError",
    "MalformedTextChunkError",
]
