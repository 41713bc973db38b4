"""Serve the API: ``python -m gridflow``."""
import uvicorn

from .config import settings


def main():
    uvicorn.run("gridflow.main:app", host=settings.host, port=settings.port, reload=settings.debug)


if __name__ == "__main__":
    main()
