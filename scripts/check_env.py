#!/usr/bin/env python3
"""
Check that the environment and blog files the pipeline needs are in place.

Usage:
    python scripts/check_env.py [--config config.yml] [--write-config config.effective.yml]
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Mapping, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from utils.config_loader import dump_config, load_config  # noqa: E402

REQUIRED_ENV = (
    "OPENAI_API_KEY",
    "REPLICATE_API_TOKEN",
    "BLOB_READ_WRITE_TOKEN",
    "INTERNAL_API_KEY",
    "CRON_SECRET",
)
OPTIONAL_ENV = ("INTERNAL_API_BASE_URL", "DATABASE_URL", "FLASK_SECRET_KEY")


def check(config: Mapping, environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Return a list of problems; empty when everything required is present."""
    env = os.environ if environ is None else environ
    problems = [f"Missing environment variable {name}" for name in REQUIRED_ENV if not env.get(name)]

    paths_cfg = config.get("paths", {})
    blog_index = Path(paths_cfg.get("blog_index", "app/blog/blog-data.ts"))
    content_dir = Path(paths_cfg.get("content_dir", "app/blog/content"))
    if not blog_index.is_file():
        problems.append(f"Blog index not found: {blog_index}")
    if not content_dir.is_dir():
        problems.append(f"Content directory not found: {content_dir}")
    return problems


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--config", default="config.yml", help="base config file")
    parser.add_argument("--write-config", metavar="PATH", help="also write the merged configuration (.yml or .json) to PATH")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.write_config:
        dump_config(Path(args.write_config), config)
        print(f"Effective configuration written to {args.write_config}")

    problems = check(config)
    for name in OPTIONAL_ENV:
        state = "set" if os.environ.get(name) else "not set (using default)"
        print(f"{name}: {state}")

    if problems:
        print("\nEnvironment check failed:", file=sys.stderr)
        for problem in problems:
            print(f"  - {problem}", file=sys.stderr)
        return 1
    print("\nEnvironment looks good.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
