"""
Vehicle Rental System Backend
=============================
Entry point. Run with: uvicorn main:app --reload
(or ``python main.py``, which reads HOST / PORT / RELOAD from settings).
"""

import uvicorn

from src.api.app import create_app
from src.config import settings

app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
