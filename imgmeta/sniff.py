# sniff.py

from __future__ import annotations

import struct

# Минимальная длина буфера, по которой определяется формат
MAGIC_LEN = 4

# Низкоуровневые функции проверки сигнатур форматов, для которых есть обработчики
def _is_jpeg(h: bytes)  -> bool: return h[:2] == b"\xFF\xD8"
def _is_png(h: bytes)   -> bool: return h[:4] == b"\x89PNG"

# Сигнатуры известных форматов, для которых не написан обработчик
def _is_gif(h: bytes)   -> bool: return h[:6] in (b"GIF87a", b"GIF89a")
def _is_webp(h: bytes)  -> bool: return len(h) >= 12 and h[0:4] == b"RIFF" and h[8:12] == b"WEBP"
def _is_bmp(h: bytes)   -> bool: return h[:2] == b"BM"
def _is_tiff(h: bytes)  -> bool: return h[:4] in (b"II*\x00", b"MM\x00*")


# Определение семейства формата, для которого есть обработчик ("jpeg", "png" или "other")
def sniff_family(head: bytes) -> str:
    if _is_jpeg(head):
        return "jpeg"
    if _is_png(head):
        return "png"
    return "other"


# Определение семейства формата с учетом известных форматов без обработчиков (для отчета)
def magic_family(head: bytes) -> str:
    fam = sniff_family(head)
    if fam != "other":
        return fam
    if _is_gif(head):   return "gif"
    if _is_webp(head):  return "webp"
    if _is_bmp(head):   return "bmp"
    if _is_tiff(head):  return "tiff"
    return "unknown"


# Первые 4 байта буфера как 32-битное число (big-endian)
def magic_word(head: bytes) -> int:
    return struct.unpack_from(">I", head, 0)[0]


__all__ = ["MAGIC_LEN", "sniff_family", "magic_family", "magic_word"]
