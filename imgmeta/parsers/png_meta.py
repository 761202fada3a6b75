# parsers/png_meta.py

from __future__ import annotations

import struct
import zlib
from typing import Iterator, List, Optional, Tuple

from imgmeta.cursor import Buffer, ByteCursor
from imgmeta.model import (
    ImageMetadata,
    InvalidChunkCrcError,
    InvalidIHDRLengthError,
    MalformedTextChunkError,
    MissingIHDRError,
    TruncatedChunkError,
)

PNG_SIG = b"\x89PNG\r\n\x1a\n"
HEADER_LEN = 8
# Минимальный размер чанка: длина (4) + тип (4) + CRC (4)
CHUNK_OVERHEAD = 12
IHDR_LEN = 13

IHDR = b"IHDR"
TEXT = b"tEXt"
IEND = b"IEND"

COMMENT_KEYWORD = b"comment"


class PngChunk:
    __slots__ = ("chunk_type", "position", "data", "crc")

    def __init__(self, chunk_type: bytes, position: int, data, crc: int) -> None:
        self.chunk_type = chunk_type
        self.position = position
        self.data = data
        self.crc = crc

    def __repr__(self) -> str:
        return f"PngChunk(type={self.chunk_type!r}, position={self.position}, size={len(self.data)})"

    def crc_ok(self) -> bool:
        # CRC32 считается по типу чанка и его данным
        actual = zlib.crc32(self.data, zlib.crc32(self.chunk_type)) & 0xFFFFFFFF
        return actual == self.crc

    def read_ihdr(self) -> Tuple[int, int]:
        if len(self.data) != IHDR_LEN:
            raise InvalidIHDRLengthError(len(self.data))
        width, height = struct.unpack_from(">II", self.data, 0)
        return width, height

    def read_text(self) -> Tuple[bytes, bytes]:
        # tEXt: ключевое слово, байт NUL, текст
        raw = bytes(self.data)
        sep = raw.find(b"\x00")
        if sep == -1:
            raise MalformedTextChunkError(self.position)
        return raw[:sep], raw[sep + 1:]


class PngChunks:
    """Ленивая последовательность чанков PNG с проверкой CRC.

    Каждый проход начинается заново с ``start`` (по умолчанию сразу после сигнатуры).
    """

    def __init__(self, data: Buffer, start: int = HEADER_LEN) -> None:
        self.data = data
        self.start = start
        self.position = start

    def __iter__(self) -> Iterator[PngChunk]:
        cursor = ByteCursor(self.data, self.start)
        self.position = cursor.position
        while cursor.remaining >= CHUNK_OVERHEAD:
            position = cursor.position
            length = cursor.read_u32()
            chunk_type = cursor.read_bytes(4)

            # Объявленная длина проверяется до чтения данных: данные + CRC должны уместиться в буфер
            if not cursor.has(length + 4):
                raise TruncatedChunkError(chunk_type, position, length)

            payload = cursor.view(length)
            crc = cursor.read_u32()
            chunk = PngChunk(chunk_type, position, payload, crc)
            if not chunk.crc_ok():
                raise InvalidChunkCrcError(chunk_type, position)

            self.position = cursor.position
            yield chunk


# Главная функция разбора PNG: размеры из IHDR и текст tEXt-чанков с ключом "comment"
def parse_png(data: Buffer) -> ImageMetadata:
    comments: List[bytes] = []
    dimensions: Optional[Tuple[int, int]] = None

    for chunk in PngChunks(data):
        ctype = chunk.chunk_type
        if ctype == IHDR:
            ihdr = chunk.read_ihdr()
            if dimensions is None:
                dimensions = ihdr
        elif ctype == TEXT:
            keyword, text = chunk.read_text()
            if keyword == COMMENT_KEYWORD:
                comments.append(text)
        elif ctype == IEND:
            # IEND - последний чанк
            break

    if dimensions is None:
        raise MissingIHDRError()

    width, height = dimensions
    return ImageMetadata(width, height, comments)
