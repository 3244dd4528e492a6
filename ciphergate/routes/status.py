"""Health and status routes."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ciphergate.activation import ActivationState

router = APIRouter(tags=["status"])


class HealthResponse(BaseModel):
    status: str
    activation: str
    listener: str


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Health check endpoint."""
    app = request.app
    activation = app.state.activator.state
    listener = app.state.listener

    healthy = activation == ActivationState.LISTENER_RUNNING and listener.running
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        activation=activation.value,
        listener=listener.state.value,
    )


@router.get("/api/status")
async def status_api(request: Request):
    """JSON status: registration, listener supervision and active notices."""
    app = request.app
    listener = app.state.listener

    return {
        "number": app.state.activator.number,
        "transport": app.state.transport.name,
        "activation": app.state.activator.state.value,
        "listener": {
            "state": listener.state.value,
            "restarts": listener.restarts,
            "last_error": listener.last_error,
        },
        "notifications": [
            {
                "id": n.id,
                "level": n.level,
                "message": n.message,
                "created": n.created.isoformat(),
            }
            for n in app.state.notifications.active()
        ],
    }
