"""Route modules for the gateway API."""

from ciphergate.routes.errors import register_error_handlers
from ciphergate.routes.messaging import router as messaging_router
from ciphergate.routes.status import router as status_router


def include_all_routes(app):
    """Include all route modules and error handlers in the app."""
    register_error_handlers(app)
    app.include_router(messaging_router)
    app.include_router(status_router)
