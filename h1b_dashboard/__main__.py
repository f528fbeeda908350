"""Run the API: python -m h1b_dashboard"""
import uvicorn

from h1b_dashboard.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "h1b_dashboard.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
