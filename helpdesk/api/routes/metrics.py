from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from helpdesk.metrics import metrics_registry

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=PlainTextResponse, summary="Prometheus text exposition")
async def metrics(request: Request) -> str:
    services = getattr(request.app.state, "services", None)
    registry = services.metrics if services is not None else metrics_registry
    return registry.render_prometheus()
