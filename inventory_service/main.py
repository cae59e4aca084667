"""FastAPI application entrypoint for the inventory service."""

from fastapi import FastAPI

from inventory_service.core.dispatcher import ErrorDispatcher
from inventory_service.core.errors import register_error_handlers


def create_app(dispatcher: ErrorDispatcher | None = None) -> FastAPI:
    """Build the application with the shared error envelope handlers."""
    application = FastAPI(title="Inventory Service")
    register_error_handlers(application, dispatcher)

    @application.get("/health")
    def health() -> dict[str, str]:
        """Health check stub endpoint for service readiness."""
        return {"status": "ok"}

    return application


app = create_app()
