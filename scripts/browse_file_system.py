#!/usr/bin/env python3
"""Check the configured file systems and browse one of them from the shell."""

from __future__ import annotations

import argparse
import os
import shutil
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from bucketview.config.startup import configure_logging, initialize_filesystems  # noqa: E402
from bucketview.services.filesystem import CallContext, FileSystemError, check_path  # noqa: E402


def parse_args():
    p = argparse.ArgumentParser(description='Stat, list or print paths served by the configured file systems')
    p.add_argument('command', choices=('check', 'stat', 'ls', 'cat'))
    p.add_argument('path', nargs='?', default='/')
    p.add_argument('--root', type=str, default=None, help='configured root to use (default: FILE_SYSTEM_ROOT)')
    p.add_argument('--site', type=str, default=None, help='resolve the file system by host name instead')
    p.add_argument('--timeout', type=float, default=30.0)
    p.add_argument('--log-level', type=str, default=None)
    return p.parse_args()


def main() -> int:
    args = parse_args()
    configure_logging(args.log_level)

    try:
        registry = initialize_filesystems()
    except FileSystemError as exc:
        print(f"ERROR: invalid file system configuration: {exc}", file=sys.stderr)
        return 2

    if args.command == 'check':
        for root in registry.roots:
            print(root)
        return 0

    fs = registry.get(args.root) if args.root else registry.for_site(args.site)
    if fs is None:
        print('ERROR: no file system configured (set FILE_SYSTEM_ROOT or pass --root)', file=sys.stderr)
        return 2
    if not check_path(args.path):
        print(f"ERROR: invalid path {args.path!r}", file=sys.stderr)
        return 2

    ctx = CallContext(timeout=args.timeout)
    try:
        if args.command == 'stat':
            info = fs.stat(args.path, ctx)
            kind = 'dir' if info.is_dir else 'file'
            print(f"{info.name}\t{kind}\t{info.size}\t{info.mod_time.isoformat()}")
        elif args.command == 'ls':
            for entry in fs.read_dir(args.path, ctx):
                kind = 'd' if entry.is_dir else '-'
                print(f"{kind} {entry.size:>12} {entry.mod_time.isoformat()} {entry.name}")
        else:
            with fs.open(args.path, ctx) as stream:
                shutil.copyfileobj(stream, sys.stdout.buffer)
    except Exception as exc:
        if fs.is_not_exist(exc):
            print(f"not found: {args.path}", file=sys.stderr)
            return 1
        raise
    return 0


if __name__ == '__main__':
    sys.exit(main())
