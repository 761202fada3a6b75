#parsers/jpeg_meta.py

from __future__ import annotations

import logging
import struct
from typing import Iterator, List, Optional, Tuple

from imgmeta.cursor import Buffer, ByteCursor
from imgmeta.model import (
    ImageMetadata,
    InvalidFrameMarkerError,
    InvalidSegmentLengthError,
    NoSofMarkerError,
    NoSoiMarkerError,
    SofDataTooShortError,
)

logger = logging.getLogger(__name__)

# Маркеры формата JPEG (полное 16-битное слово 0xFFxx)
SOI = 0xFFD8  # Маркер начала изображения (Start of Image)
EOI = 0xFFD9  # Маркер конца изображения (End of Image)
SOS = 0xFFDA  # Маркер начала скана (Start of Scan)
COM = 0xFFFE  # Комментарий (Comment)

# Маркеры без поля длины, которые возвращаются как сегменты с пустыми данными.
# Данные SOS не читаются: после него идут сжатые данные, метаданных там нет
NO_LENGTH_MARKERS = {SOI, EOI, SOS}

# Набор маркеров SOF (Start Of Frame): 0xFFC0..0xFFCF без DHT (C4), JPG (C8) и DAC (CC)
SOF_MARKERS = {
    0xFFC0, 0xFFC1, 0xFFC2, 0xFFC3,
    0xFFC5, 0xFFC6, 0xFFC7,
    0xFFC9, 0xFFCA, 0xFFCB,
    0xFFCD, 0xFFCE, 0xFFCF,
}

# Длина SOI, с которой начинается любой JPEG
SOI_LEN = 2
# Минимальная длина данных SOF: точность (1) + высота (2) + ширина (2)
SOF_MIN_LEN = 5


class JpegSegment:
    __slots__ = ("marker", "position", "data")

    def __init__(self, marker: int, position: int, data) -> None:
        self.marker = marker
        self.position = position
        # Срез входного буфера без копирования (memoryview)
        self.data = data

    def __repr__(self) -> str:
        return f"JpegSegment(marker=0x{self.marker:04x}, position={self.position}, size={len(self.data)})"

    @property
    def is_sof(self) -> bool:
        return self.marker in SOF_MARKERS

    @property
    def is_com(self) -> bool:
        return self.marker == COM

    def read_sof(self) -> Tuple[int, int]:
        """Размеры кадра из данных SOF как (width, height).

        В потоке высота идет раньше ширины: байт 0 - точность, 1-2 - высота, 3-4 - ширина.
        """
        if len(self.data) < SOF_MIN_LEN:
            raise SofDataTooShortError(self.position)
        height, width = struct.unpack_from(">HH", self.data, 1)
        return width, height


# Поиск следующего маркера после потери синхронизации: байт 0xFF, за которым идет байт > 0x01.
# Если такой пары нет, курсор ставится на конец буфера
def _resync(cursor: ByteCursor) -> None:
    data = cursor.data
    n = len(data)
    start = pos = cursor.position
    while pos + 1 < n:
        if data[pos] == 0xFF and data[pos + 1] > 0x01:
            break
        next_ff = cursor.find(0xFF, pos + 1)
        pos = n if next_ff == -1 else next_ff
    else:
        pos = n
    logger.warning("Потеря синхронизации JPEG в позиции %d, продолжение с позиции %d", start, pos)
    cursor.seek(pos)


class JpegSegments:
    """Ленивая последовательность сегментов JPEG, начиная с позиции ``start``.

    Последовательность заканчивается на EOI/SOS (включительно) или на конце
    буфера. Каждый новый проход начинается заново с ``start``. После прохода в
    ``position`` остается позиция, на которой остановилось чтение.
    """

    def __init__(self, data: Buffer, start: int = SOI_LEN) -> None:
        self.data = data
        self.start = start
        self.position = start

    def __iter__(self) -> Iterator[JpegSegment]:
        cursor = ByteCursor(self.data, self.start)
        self.position = cursor.position
        while True:
            segment = self._read_segment(cursor)
            self.position = cursor.position
            if segment is None:
                return
            yield segment
            # После EOI/SOS сегментов с метаданными нет, дальше идут сжатые данные
            if segment.marker in (EOI, SOS):
                return

    @staticmethod
    def _read_segment(cursor: ByteCursor) -> Optional[JpegSegment]:
        # Если текущий байт не 0xFF, поток рассинхронизирован - ищем следующий маркер
        if cursor.peek_u8() != 0xFF:
            _resync(cursor)

        # Данных на маркер не осталось - конец обхода
        if cursor.remaining < 2:
            return None

        position = cursor.position
        marker = cursor.read_u16()
        if marker < 0xFF01 or marker == 0xFFFF:
            raise InvalidFrameMarkerError(marker, position)

        if marker in NO_LENGTH_MARKERS:
            return JpegSegment(marker, position, b"")

        # Поле длины обрезано концом буфера - данные исчерпаны
        if cursor.remaining < 2:
            return None

        # Длина включает само 2-байтовое поле длины
        seg_len = cursor.read_u16()
        if seg_len < 2 or not cursor.has(seg_len - 2):
            raise InvalidSegmentLengthError(seg_len)

        return JpegSegment(marker, position, cursor.view(seg_len - 2))


# Главная функция разбора JPEG: размеры из первого SOF и все COM-комментарии
def parse_jpeg(data: Buffer) -> ImageMetadata:
    # Проверка SOI
    if len(data) < SOI_LEN or data[0] != 0xFF or data[1] != 0xD8:
        raise NoSoiMarkerError()

    segments = JpegSegments(data)
    comments: List[bytes] = []
    dimensions: Optional[Tuple[int, int]] = None

    for segment in segments:
        marker = segment.marker

        # После EOI/SOS метаданных больше нет
        if marker in (EOI, SOS):
            break

        # Повторный SOI внутри потока пропускается
        if marker == SOI:
            continue

        if segment.is_sof:
            # Учитывается только первый SOF
            if dimensions is None:
                dimensions = segment.read_sof()
        elif segment.is_com:
            comments.append(bytes(segment.data))

    if dimensions is None:
        raise NoSofMarkerError(segments.position, comments)

    width, height = dimensions
    return ImageMetadata(width, height, comments)
