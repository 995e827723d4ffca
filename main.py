"""
Linkup API server.

Runs a single uvicorn process: the JSON document store serializes writes
with an in-process lock, so it must not be shared between workers.
"""

import os
import sys
import traceback

import uvicorn
from dotenv import load_dotenv


def main() -> int:
    load_dotenv()

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    environment = os.getenv("ENVIRONMENT", "development").lower()

    try:
        uvicorn.run(
            "linkup_web.app:create_app",
            factory=True,
            host=host,
            port=port,
            reload=environment == "development",
            log_level="info" if environment == "production" else "debug",
        )
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
