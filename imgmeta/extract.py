# extract.py

from __future__ import annotations

import argparse
import csv
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from imgmeta import sniff
from imgmeta.model import (
    DataTooShortError,
    DecodingError,
    ImageMetadata,
    ImageReadError,
    NoSofMarkerError,
    UnknownMagicError,
)
from imgmeta.parser_registry import available_families, get_parser

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

# Определение путей к файлу конфигурации
CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
CONFIG_FILE = CONFIG_DIR / "imgmeta.yaml"

# Колонки отчета в порядке вывода в CSV
REPORT_COLUMNS = [
    "path",
    "format_family",
    "magic_family",
    "size_bytes",
    "width",
    "height",
    "comments_count",
    "comments",
    "error",
    "error_detail",
]

DEFAULT_CSV_NAME = "image_metadata.csv"
DEFAULT_ENCODING = "utf-8"
DEFAULT_SEPARATOR = " | "


# Загрузка файла конфигурации.
# Явно указанный файл обязан существовать, отсутствие файла по умолчанию дает пустую конфигурацию
def load_cfg(path: Optional[PathLike] = None) -> dict:
    cfg_file = Path(path) if path is not None else CONFIG_FILE
    if not cfg_file.is_file():
        if path is not None:
            raise FileNotFoundError(f"imgmeta.yaml not found at: {cfg_file}")
        return {}
    with cfg_file.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data is not None else {}


# Вспомогательная функция для безопасного чтения вложенных ключей из файла конфигурации
def _get(cfg: dict, path: str, default=None):
    # Достаем cfg['a']['b']['c'] по строке 'a.b.c'
    cur = cfg
    for k in path.split('.'):
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def read_bytes(data: Union[bytes, bytearray, memoryview]) -> ImageMetadata:
    """Читает размеры и комментарии изображения из буфера.

    Формат определяется по первым байтам: ``FF D8`` - JPEG, ``89 50 4E 47`` - PNG.
    При ошибке разбора выбрасывается подкласс :class:`DecodingError`.
    """
    if not isinstance(data, (bytes, bytearray)):
        data = bytes(data)
    if len(data) < sniff.MAGIC_LEN:
        raise DataTooShortError(len(data))

    parser = get_parser(sniff.sniff_family(data))
    if parser is None:
        raise UnknownMagicError(sniff.magic_word(data))
    return parser(data)


def read_file(path: PathLike) -> ImageMetadata:
    """Читает файл целиком в память и разбирает его через :func:`read_bytes`.

    Ошибка чтения файла оборачивается в :class:`ImageReadError`.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise ImageReadError(path, exc) from exc
    return read_bytes(data)


# Итератор для рекурсивного обхода файлов в директории (в отсортированном порядке)
def iter_files(root_dir: PathLike):
    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames.sort()
        for name in sorted(filenames):
            yield os.path.join(dirpath, name)


def _decode_comments(comments: Iterable[bytes], encoding: str, separator: str) -> str:
    return separator.join(c.decode(encoding, errors="replace") for c in comments)


# Главная функция сбора метаданных одного файла для отчета.
# Ошибки разбора не прерывают обработку, а попадают в колонки error/error_detail
def extract_meta(file_path: PathLike, cfg: dict) -> Dict[str, Any]:
    enabled = set(_get(cfg, "global.sniffer.enabled_families", None) or available_families())
    encoding = str(_get(cfg, "output.comment_encoding", DEFAULT_ENCODING))
    separator = str(_get(cfg, "output.comment_separator", DEFAULT_SEPARATOR))

    row: Dict[str, Any] = {name: None for name in REPORT_COLUMNS}
    row["path"] = str(file_path)

    # 1. Чтение файла
    try:
        data = Path(file_path).read_bytes()
    except OSError as exc:
        err = ImageReadError(file_path, exc)
        logger.warning("%s", err)
        row["error"] = type(err).__name__
        row["error_detail"] = str(err)
        return row

    row["size_bytes"] = len(data)
    fam = sniff.sniff_family(data)
    row["magic_family"] = sniff.magic_family(data)
    row["format_family"] = fam if fam in enabled else "other"

    # 2. Семейства, отключенные в конфигурации, не разбираются
    if fam != "other" and fam not in enabled:
        row["error"] = "disabled"
        return row

    # 3. Разбор
    try:
        meta = read_bytes(data)
    except DecodingError as exc:
        logger.info("%s: %s", file_path, exc)
        row["error"] = type(exc).__name__
        row["error_detail"] = str(exc)
        # Для JPEG без SOF сохраняются комментарии, найденные до ошибки
        if isinstance(exc, NoSofMarkerError):
            row["comments_count"] = len(exc.comments)
            row["comments"] = _decode_comments(exc.comments, encoding, separator)
        return row

    row["width"] = meta.width
    row["height"] = meta.height
    row["comments_count"] = len(meta.comments)
    row["comments"] = _decode_comments(meta.comments, encoding, separator)
    return row


def write_csv(out_path: Path, fieldnames: List[str], rows: Iterable[Dict[str, Any]]) -> None:
    """Запись строк (dict) в CSV-файл"""
    with out_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            # Замена None на пустые строки для CSV
            writer.writerow(
                {key: ("" if row.get(key) is None else row.get(key)) for key in fieldnames}
            )


# Обработка целой директории: одна строка отчета на файл
def extract_directory(input_dir: PathLike, output_dir: PathLike, cfg: dict) -> Tuple[Path, int]:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_csv = out_dir / str(_get(cfg, "output.csv_name", DEFAULT_CSV_NAME))

    rows: List[Dict[str, Any]] = []
    for path in iter_files(input_dir):
        row = extract_meta(path, cfg)
        row["path"] = os.path.relpath(path, start=input_dir).replace("\\", "/")
        rows.append(row)

    write_csv(out_csv, REPORT_COLUMNS, rows)
    return out_csv, len(rows)


# Точка входа для запуска через командную строку
def main(argv: Optional[Iterable[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Extract JPEG/PNG dimensions and comments into a CSV report.")
    parser.add_argument("input_dir", type=Path, help="Directory with image files (walked recursively).")
    parser.add_argument("output_dir", type=Path, help="Directory to store the resulting CSV file.")
    parser.add_argument("--cfg", type=Path, default=None, help="Path to imgmeta.yaml.")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...).")
    args = parser.parse_args(None if argv is None else list(argv))

    cfg = load_cfg(args.cfg)
    level = str(args.log_level or _get(cfg, "global.logging.level", "WARNING")).upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if not args.input_dir.is_dir():
        raise SystemExit(f"Директория не найдена: {args.input_dir}")

    out_csv, count = extract_directory(args.input_dir, args.output_dir, cfg)
    print(f"Записано {count} строк в {out_csv}")


if __name__ == "__main__":
    main()
