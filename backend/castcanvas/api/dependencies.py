"""Request Dependencies — hand the process-wide services to route handlers.

Invariants:
    - Services are read from app.state (set once by the lifespan); never rebuilt per request
    - A request arriving before startup completed gets a RuntimeError (500), not a
      half-initialized store
"""

from fastapi import Request

from castcanvas.services.container import CanvasServices


def get_services(request: Request) -> CanvasServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialized")
    return services
