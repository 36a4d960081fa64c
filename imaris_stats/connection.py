"""Helpers for talking to a running Imaris instance through ImarisXT."""
from __future__ import annotations

import logging
import re
from typing import Any, Iterator, Optional, Sequence

from .errors import EngineQueryError

logger = logging.getLogger(__name__)

try:  # pragma: no cover - ships with Imaris (XT/python3), not installable from PyPI
    import ImarisLib  # type: ignore[import-not-found]
except ImportError:  # pragma: no cover - handled in get_imaris_application
    ImarisLib = None  # type: ignore[assignment]

_PATH_SEPARATORS = re.compile(r"[\\/]")


def get_imaris_application(object_id: int = 0) -> Any:
    """Return the ``IApplication`` proxy of the Imaris instance ``object_id``.

    ``ImarisLib`` lives in the ``XT/python3`` folder of an Imaris installation;
    add that folder to ``PYTHONPATH`` when running outside of Imaris.
    """
    if ImarisLib is None:
        raise EngineQueryError(
            "ImarisLib is not importable; add the XT/python3 folder of your "
            "Imaris installation to PYTHONPATH"
        )
    try:
        application = ImarisLib.ImarisLib().GetApplication(object_id)
    except Exception as exc:
        raise EngineQueryError(f"Could not connect to Imaris {object_id}: {exc}") from exc
    if application is None:
        raise EngineQueryError(f"No running Imaris instance with id {object_id}")
    logger.info("Connected to Imaris instance %s", object_id)
    return application


def image_display_name(path: Optional[str]) -> str:
    """Return the file name part of ``path`` (Windows or POSIX separators)."""
    if not path:
        return ""
    return _PATH_SEPARATORS.split(str(path))[-1]


def open_image_name(application: Any) -> str:
    """File name of the image currently opened in ``application``."""
    try:
        path = application.GetCurrentFileName()
    except Exception as exc:
        raise EngineQueryError(f"Imaris could not report the open image: {exc}") from exc
    return image_display_name(path)


def iter_surpass_items(application: Any) -> Iterator[Any]:
    """Yield the direct children of the Surpass scene."""
    try:
        scene = application.GetSurpassScene()
        if scene is None:
            return
        count = scene.GetNumberOfChildren()
        children = [scene.GetChild(index) for index in range(count)]
    except Exception as exc:
        raise EngineQueryError(f"Could not list Surpass items: {exc}") from exc
    yield from children


def iter_object_items(application: Any) -> Iterator[Any]:
    """Yield the Surfaces and Spots of the Surpass scene."""
    factory = application.GetFactory()
    for item in iter_surpass_items(application):
        if factory.IsSurfaces(item) or factory.IsSpots(item):
            yield item


def find_item(application: Any, name: str) -> Any:
    """Return the Surpass item called ``name``; ``KeyError`` if there is none."""
    for item in iter_surpass_items(application):
        if item.GetName() == name:
            return item
    raise KeyError(f"No Surpass item named {name!r}")


def find_items(application: Any, names: Sequence[str]) -> list:
    return [find_item(application, name) for name in names]


def add_to_scene(application: Any, item: Any) -> None:
    """Append ``item`` as the last child of the Surpass scene."""
    try:
        scene = application.GetSurpassScene()
        scene.AddChild(item, -1)
    except Exception as exc:
        raise EngineQueryError(f"Could not add {item!r} to the Surpass scene: {exc}") from exc


__all__ = [
    "get_imaris_application",
    "image_display_name",
    "open_image_name",
    "iter_surpass_items",
    "iter_object_items",
    "find_item",
    "find_items",
    "add_to_scene",
]
