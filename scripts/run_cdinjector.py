#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[cdinjector] server={os.environ.get('CDINJECTOR_SERVER_URL', 'http://127.0.0.1:5743')} | "
    f"gateway={os.environ.get('CDINJECTOR_GATEWAY_HOST', '127.0.0.1')}:"
    f"{os.environ.get('CDINJECTOR_GATEWAY_PORT', '8766')} | "
    f"extension={os.environ.get('CDINJECTOR_EXTENSION_ID', 'any')}",
    file=sys.stderr,
)

from cdinjector.main import main  # noqa: E402

if __name__ == "__main__":
    main()
