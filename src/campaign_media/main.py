"""FastAPI application entry point."""

from dotenv import load_dotenv
from fastapi import FastAPI

from .config import AppConfig, load_config
from .dependencies import include_routers
from .logging import configure_logging


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    configure_logging()
    if config is None:
        load_dotenv(".env.local")
        load_dotenv(".env", override=False)
    cfg = config or load_config()
    app = FastAPI(title="Campaign Media")
    include_routers(app, cfg)
    return app
