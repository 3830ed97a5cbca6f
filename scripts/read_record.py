"""Read a raw registry key from a JSON store file for debugging.

Usage: python scripts/read_record.py <store_path> <key>
Keys look like att:<id>, subject_atts:<addr>, issuer_atts:<addr>, issuer:<addr>, admin.
"""

from __future__ import annotations

import json
import sys

from trustlink.sdk.store import JsonFileStore


def main() -> int:
    if len(sys.argv) < 3:
        print("Usage: read_record.py <store_path> <key>", file=sys.stderr)
        return 2
    store = JsonFileStore(sys.argv[1])
    key = sys.argv[2]
    if not store.has(key):
        print(f"missing key: {key}", file=sys.stderr)
        return 1
    print(json.dumps(store.get(key), indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
