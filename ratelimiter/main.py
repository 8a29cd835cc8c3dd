import uvicorn

from ratelimiter.core.app_factory import create_app

app = create_app()


def run() -> None:
    """Serve the demo app (``ratelimiter-demo`` console script)."""

    uvicorn.run("ratelimiter.main:app", host="0.0.0.0", port=8000)
