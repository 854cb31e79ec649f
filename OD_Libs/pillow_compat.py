"""
Compatibility wrapper to import Pillow (which provides the `PIL` namespace)
for the codec boundary of Open Dither.

This module loads the Pillow-provided modules via importlib and re-exports the
symbols the codec code needs: the `Image` module and the
`UnidentifiedImageError` raised for files Pillow cannot identify.
"""
from importlib import import_module
from types import ModuleType


def _import(name: str) -> ModuleType:
    try:
        return import_module(name)
    except ImportError as exc:
        raise ImportError("pillow (PIL) is required: install with 'pip install Pillow'") from exc


_pil = _import("PIL")

Image = _import("PIL.Image")

UnidentifiedImageError = _pil.UnidentifiedImageError

# Type hint helper referencing PIL.Image.Image
ImageClass = Image.Image
