#parser_registry.py

from __future__ import annotations

import inspect
from importlib import import_module
from pathlib import Path
from typing import Callable, Dict, List, Optional

PARSERS_SUBDIR = "parsers"


def iter_parser_files(subdir: str) -> List[Path]:
    base = Path(__file__).resolve().parent / subdir
    files: List[Path] = []
    if not base.is_dir():
        return files
    for entry in sorted(base.iterdir()):
        if entry.is_dir():
            continue
        if entry.suffix != ".py":
            continue
        if entry.name.startswith("__"):
            continue
        files.append(entry)
    return files


def load_parser_module(subdir: str, path: Path):
    # Ошибка импорта обработчика не скрывается
    return import_module(f"{__package__}.{subdir}.{path.stem}")


# Регистрация всех функций parse_<family> из модулей каталога обработчиков
def discover_parsers(subdir: str) -> Dict[str, Callable]:
    registry: Dict[str, Callable] = {}
    for file_path in iter_parser_files(subdir):
        module = load_parser_module(subdir, file_path)
        for name, fn in inspect.getmembers(module, inspect.isfunction):
            if not name.startswith("parse_"):
                continue
            # Учитываются только функции, определенные в самом модуле
            if fn.__module__ != module.__name__:
                continue
            family = name[len("parse_"):].strip()
            if family:
                registry.setdefault(family, fn)
    return registry


PARSERS: Dict[str, Callable] = discover_parsers(PARSERS_SUBDIR)


def get_parser(family: str) -> Optional[Callable]:
    return PARSERS.get(str(family))


def available_families() -> List[str]:
    return sorted(PARSERS.keys())


__all__ = [
    "PARSERS",
    "get_parser",
    "available_families",
]
