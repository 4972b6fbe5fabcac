#!/usr/bin/env python
"""Run the marketplace chat API under uvicorn, listening on $PORT (default 8000)."""
import os
import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))

    print(f"Starting marketplace chat API on port {port}")

    uvicorn.run(
        "marketplace.main:app",
        host="0.0.0.0",
        port=port,
        log_level="info"
    )
