"""Health check endpoints.

- /healthz: Liveness check (is the process alive?)
- /readyz: Readiness check (503 until a model is loaded)
- /health: Combined view with component status
"""

from typing import Any

from fastapi import APIRouter, Response, status

from puppet_expressions.api.routes.expressions import get_engine

router = APIRouter(tags=["health"])


# Health status tracking
_ready: bool = False
_components: dict[str, bool] = {
    "engine": False,
    "frame_driver": False,
}


def set_ready(ready: bool) -> None:
    """Set overall readiness status."""
    global _ready
    _ready = ready


def set_component_health(component: str, healthy: bool) -> None:
    """Set health status for a specific component."""
    _components[component] = healthy


def get_component_health() -> dict[str, bool]:
    """Get health status of all components, including the model."""
    components = _components.copy()
    components["model"] = get_engine().is_ready
    return components


def _is_ready(components: dict[str, bool]) -> bool:
    return _ready and all(components.values())


@router.get("/healthz", response_model=dict[str, str])
async def healthz() -> dict[str, str]:
    """Liveness check.

    Returns 200 if the process is alive.
    """
    return {"status": "alive"}


@router.get("/readyz")
async def readyz(response: Response) -> dict[str, Any]:
    """Readiness check.

    Returns 503 until the service is started and a model is loaded.
    """
    components = get_component_health()
    if _is_ready(components):
        return {
            "status": "ready",
            "components": components,
        }

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "not_ready",
        "components": components,
    }


@router.get("/health")
async def health(response: Response) -> dict[str, Any]:
    """Combined health endpoint.

    Provides both liveness and readiness information.
    """
    components = get_component_health()
    ready = _is_ready(components)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    engine = get_engine()
    return {
        "status": "healthy" if ready else "degraded",
        "ready": ready,
        "model_name": engine.model_name,
        "expressions": len(engine.library),
        "components": components,
    }
