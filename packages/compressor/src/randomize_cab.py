#!/usr/bin/env python3
"""
Rewrite the CAB- identifier embedded near the start of an asset bundle.

The new value is written over the old one byte for byte, so the file keeps its
length. Randomizing CAB strings of game bundles can break their dependencies;
it is meant for mod bundles.
"""

import argparse
import random
from pathlib import Path
from typing import NamedTuple, Optional

from bundle_files import replace_file


CAB_PREFIX = b"CAB-"
CAB_RANDOM_BYTES = 16
CAB_MAX_LENGTH = len(CAB_PREFIX) + CAB_RANDOM_BYTES * 2  # 36
SCAN_WINDOW = 1024

PATCHED = "patched"
UNCHANGED = "unchanged"


class CabWindow(NamedTuple):
    index: int
    length: int


def generate_cab(rng) -> str:
    return CAB_PREFIX.decode("ascii") + rng.randbytes(CAB_RANDOM_BYTES).hex()


def find_cab_window(data) -> Optional[CabWindow]:
    window = min(SCAN_WINDOW, len(data) - len(CAB_PREFIX))
    if window <= 0:
        return None
    head = bytes(data[:window])
    index = head.find(CAB_PREFIX)
    if index == -1:
        return None
    terminator = head.find(b"\0", index)
    if terminator == -1:
        return None
    return CabWindow(index, terminator - index)


def randomize_cab_bytes(data: bytearray, rng) -> bool:
    """Overwrite the CAB value inside `data` in place.

    The generated 32 hex digits are right-aligned into the original slot: a
    shorter original value keeps only the trailing digits. Returns False and
    leaves `data` untouched when no usable identifier is found.
    """
    cab = find_cab_window(data)
    if cab is None:
        return False
    if cab.length > CAB_MAX_LENGTH or cab.length <= len(CAB_PREFIX):
        return False

    value = generate_cab(rng)[len(CAB_PREFIX):].encode("ascii")
    start = cab.index + len(CAB_PREFIX)
    end = cab.index + cab.length
    data[start:end] = value[CAB_MAX_LENGTH - cab.length :]
    return True


def randomize_cab(path: Path, rng) -> str:
    path = Path(path)
    data = bytearray(path.read_bytes())
    if not randomize_cab_bytes(data, rng):
        return UNCHANGED
    replace_file(path, bytes(data))
    return PATCHED


def main():
    parser = argparse.ArgumentParser(description="Randomize the CAB- identifier of asset bundles in place.")
    parser.add_argument("files", nargs="+", help="Bundle files to patch.")
    args = parser.parse_args()

    rng = random.SystemRandom()
    for raw in args.files:
        path = Path(raw)
        try:
            print(f"{path} | {randomize_cab(path, rng)}")
        except OSError as exc:
            print(f"{path} | error: {exc}")


if __name__ == "__main__":
    main()
