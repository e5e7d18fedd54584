#!/usr/bin/env python3
import os
from pathlib import Path


BUNDLE_SIGNATURE = b"UnityFS"
BUNDLE_EXTENSION = ".unity3d"
TEMP_SUFFIX = ".temp"


def is_asset_bundle(path: Path) -> bool:
    """True for `.unity3d` files or files starting with the UnityFS signature.

    Raises OSError if the file cannot be opened; callers decide whether that
    means "skip".
    """
    path = Path(path)
    if path.suffix == BUNDLE_EXTENSION:
        return True
    with path.open("rb") as fh:
        head = fh.read(len(BUNDLE_SIGNATURE))
    return head == BUNDLE_SIGNATURE


def iter_input_files(paths):
    for raw in paths:
        path = Path(raw)
        if path.is_file():
            yield path
        elif path.is_dir():
            for child in sorted(path.rglob("*")):
                if child.is_file():
                    yield child


def replace_file(path: Path, data: bytes):
    path = Path(path)
    temp_path = path.with_name(path.name + TEMP_SUFFIX)
    try:
        with temp_path.open("wb") as fh:
            fh.write(data)
        os.replace(temp_path, path)
    finally:
        if temp_path.exists():
            os.unlink(temp_path)
