from __future__ import annotations

from fastapi import HTTPException, Request

from helpdesk.services import HelpdeskServices


async def get_services(request: Request) -> HelpdeskServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Helpdesk services are not configured")
    return services
