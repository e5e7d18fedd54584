#!/usr/bin/env python3
"""
Recompress Unity asset bundles in place, optionally randomizing their CAB- identifiers.

Files are written to a temporary path first and only moved over the original
once the bundle has been packed successfully.
"""

import argparse
import json
import random
import sys
from collections import Counter
from pathlib import Path

import UnityPy
from UnityPy import config as unity_config
from UnityPy.files import BundleFile

from bundle_files import is_asset_bundle, iter_input_files, replace_file
from randomize_cab import randomize_cab


DEFAULT_PACKER = "lz4"
PACKERS = ("lz4", "lzma", "none", "original")

SKIPPED = "skipped"
COMPRESSED = "compressed"
ERROR = "error"


class UnityPyCodec:
    def load(self, path: Path):
        env = UnityPy.load(str(path))
        for file in env.files.values():
            if isinstance(file, BundleFile):
                return file
        raise ValueError(f"UnityPy did not recognise {path.name} as a bundle")

    def pack(self, bundle, packer: str) -> bytes:
        return bundle.save(packer=packer)


def compress_file(path: Path, codec, packer: str = DEFAULT_PACKER, randomize: bool = False, rng=None, report=None):
    path = Path(path)
    record = {
        "path": str(path),
        "outcome": None,
        "size_before": None,
        "size_after": None,
        "error": None,
    }

    try:
        bundle_like = is_asset_bundle(path)
    except OSError:
        bundle_like = False
    if not bundle_like:
        record["outcome"] = SKIPPED
        return record

    try:
        record["size_before"] = path.stat().st_size
        if randomize:
            record["cab"] = randomize_cab(path, rng)
        if report:
            report(f"Compressing {path}")
        bundle = codec.load(path)
        packed = codec.pack(bundle, packer)
        replace_file(path, packed)
    except Exception as exc:
        record["outcome"] = ERROR
        record["error"] = str(exc) or exc.__class__.__name__
        return record

    record["outcome"] = COMPRESSED
    record["size_after"] = len(packed)
    return record


def compress_paths(paths, codec, packer: str = DEFAULT_PACKER, randomize: bool = False, rng=None, as_json: bool = False):
    counts = Counter()
    report = None if as_json else print

    for path in iter_input_files(paths):
        record = compress_file(path, codec, packer, randomize, rng, report)
        counts[record["outcome"]] += 1

        if as_json:
            print(json.dumps(record, ensure_ascii=True))
        elif record["outcome"] == SKIPPED:
            print(f"Skipping {path}, not an asset bundle.")
        elif record["outcome"] == ERROR:
            print(f"{path} | error: {record['error']}", file=sys.stderr)
        else:
            print(f"{path} | {record['size_before']} -> {record['size_after']} bytes")

    return counts


def build_parser():
    parser = argparse.ArgumentParser(description="Compress Unity asset bundles in place.")
    parser.add_argument("paths", nargs="*", help="Asset bundles or folders containing asset bundles.")
    parser.add_argument("--packer", choices=PACKERS, default=DEFAULT_PACKER, help="UnityPy packer used to rewrite bundles.")
    parser.add_argument(
        "--randomize-cab",
        action="store_true",
        help="Randomize CAB- strings before compressing (for mods; can break dependencies of game bundles).",
    )
    parser.add_argument("--unity-version", default="", help="Fallback Unity version for bundles with a stripped engine version.")
    parser.add_argument("--json", action="store_true", help="Output JSON lines instead of human-readable text.")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.paths:
        print("Pass Unity asset bundles or folders containing asset bundles to compress them.")
        parser.print_usage()
        return 0

    for raw in args.paths:
        if not Path(raw).exists():
            print(f"Skipping {raw}, path not found.", file=sys.stderr)

    if args.unity_version:
        unity_config.FALLBACK_UNITY_VERSION = args.unity_version

    counts = compress_paths(
        args.paths,
        UnityPyCodec(),
        packer=args.packer,
        randomize=args.randomize_cab,
        rng=random.SystemRandom(),
        as_json=args.json,
    )

    summary = ", ".join(f"{outcome}={counts[outcome]}" for outcome in (COMPRESSED, SKIPPED, ERROR))
    print(f"Finished compressing asset bundles: {summary}", file=sys.stderr if args.json else sys.stdout)
    return 1 if counts[ERROR] else 0


if __name__ == "__main__":
    sys.exit(main())
