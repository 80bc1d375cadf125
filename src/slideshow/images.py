# src/slideshow/images.py
from __future__ import annotations

import os

IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp"}


def scan_images(images_dir: str) -> list[str]:
    """File names (not paths) of the images available as slides, sorted."""
    if not images_dir or not os.path.isdir(images_dir):
        return []
    names: list[str] = []
    for fn in os.listdir(images_dir):
        if os.path.splitext(fn)[1].lower() in IMAGE_EXTS and os.path.isfile(os.path.join(images_dir, fn)):
            names.append(fn)
    return sorted(names, key=str.lower)


def slide_path(images_dir: str, slide_id: str) -> str | None:
    """Resolve a slide id to a file inside images_dir; refuses to leave the folder."""
    root = os.path.realpath(images_dir)
    path = os.path.realpath(os.path.join(root, slide_id))
    if os.path.commonpath([root, path]) != root or not os.path.isfile(path):
        return None
    return path
