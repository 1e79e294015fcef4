from __future__ import annotations

import logging
import os

from dotenv import load_dotenv


def configure() -> None:
    """Load .env and set up root logging once. Safe to call more than once."""
    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
