from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from buildrelay.core.config.settings import settings
from .middleware_logging import configure_logging, register_request_logging
from .error_handlers import register_error_handlers
from .routers import health, instances, jenkins


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="buildrelay", version="0.1.0")
    register_request_logging(app)
    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(instances.router)
    app.include_router(jenkins.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
