"""
stembot.api.__main__ — Entry point for ``python -m stembot.api``
=================================================================

Wiring:
1. Load .env (secrets).
2. Configure logging.
3. Hand the FastAPI app to uvicorn; the app's lifespan loads config.yaml,
   builds the DB engine and logs the Discord bot in.

Run with::

    uv run python -m stembot.api
"""

from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("stembot")


def main() -> None:
    """Run the stembot API server."""
    load_dotenv()

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))
    logger.info("Starting stembot API on %s:%d…", host, port)
    uvicorn.run("stembot.api.main:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
