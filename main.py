"""
Entry point for the prepdeck API service.

Run with:
    uvicorn main:app --port 8100
    python main.py
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

import uvicorn
from config import get_settings
from prepdeck.api.main import app  # noqa: F401  (re-exported for `uvicorn main:app`)

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "prepdeck.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.log_level == "DEBUG",
        log_level=settings.log_level.lower(),
    )
