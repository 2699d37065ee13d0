from fastapi import FastAPI

from app.shopcart.api import api_router
from app.shopcart.core.config import settings
from app.shopcart.core.errors import setup_exception_handlers
from app.shopcart.core.logging import configure_logging
from app.shopcart.middleware.request_context import RequestContextMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(RequestContextMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
