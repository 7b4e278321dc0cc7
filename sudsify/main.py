"""Entry: start API server (completion timers and expiry sweep run inside it)."""
import logging
import uvicorn

from sudsify.config import API_HOST, API_PORT

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    uvicorn.run(
        "sudsify.api.app:app",
        host=API_HOST,
        port=API_PORT,
        reload=True,
    )
