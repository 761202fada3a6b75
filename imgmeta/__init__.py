"""Быстрое чтение размеров и комментариев JPEG и PNG без декодирования пикселей.

Для PNG размеры берутся из чанка IHDR, комментарии - из чанков tEXt с ключом
"comment". Для JPEG размеры берутся из первого сегмента SOFn, комментарии - из
сегментов COM. EXIF не читается.

    >>> import imgmeta
    >>> meta = imgmeta.read_file("buttercups.jpg")  # doctest: +SKIP
    >>> (meta.width, meta.height, meta.comments)  # doctest: +SKIP
    (512, 341, (b'Buttercups',))
"""

from imgmeta.extract import read_bytes, read_file
from imgmeta.model import *  # noqa: F401,F403
from imgmeta.model import __all__ as _model_all

__all__ = ["read_bytes", "read_file"] + list(_model_all)
