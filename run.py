"""Run uvicorn. Usage: python run.py."""
import uvicorn

from docchat.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "docchat.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
    )
