"""
Print blob-store usage as JSON (same shape as GET /api/storage/usage).

Usage:
  python scripts/storage_usage.py
  python scripts/storage_usage.py --limit-mb 2048
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Report total bytes stored in the customer photo bucket.")
    parser.add_argument("--limit-mb", type=int, default=None, help="Override STORAGE_LIMIT_MB for the report.")
    args = parser.parse_args(argv)

    from app.tailorbook import create_app
    from app.tailorbook.modules.customer_images.usage import compute_storage_usage
    from app.tailorbook.storage import StorageError

    app = create_app()
    limit_mb = args.limit_mb or int(app.config["STORAGE_LIMIT_MB"])
    try:
        usage = compute_storage_usage(app.extensions["storage"], limit_mb=limit_mb)
    except StorageError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    print(json.dumps(usage.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
