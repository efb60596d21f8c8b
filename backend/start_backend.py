#!/usr/bin/env python3
"""
Run the bizdesk submodules API under uvicorn.

HOST / PORT come from the environment (defaults 0.0.0.0:8000).
"""
import os
import sys


def main() -> None:
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    print(f"[Backend] Starting bizdesk backend on http://{host}:{port}")
    try:
        uvicorn.run(
            "backend.main:app",
            host=host,
            port=port,
            reload=False,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n[Backend] Shutting down...")
        sys.exit(0)


if __name__ == "__main__":
    main()
