"""
Greeting endpoints: public GET /hello and authenticated GET /protected/hello.
"""
import logging

from fastapi import APIRouter, Depends, Request

from cyberx_api.api.deps import get_current_principal
from cyberx_api.config import SERVICE_NAME
from cyberx_api.models.types import utcnow
from cyberx_api.services.rbac import Principal

router = APIRouter(tags=["greeting"])
logger = logging.getLogger(__name__)


def _request_info(request: Request) -> dict:
    return {
        "timestamp": utcnow().isoformat(),
        "endpoint": request.url.path,
        "ip": request.client.host if request.client else None,
        "method": request.method,
        "service": SERVICE_NAME,
    }


@router.get("/hello")
def hello(request: Request):
    logger.info("Hello endpoint accessed")
    return {"message": "Hello World!", **_request_info(request)}


@router.get("/protected/hello")
def protected_hello(request: Request, principal: Principal = Depends(get_current_principal)):
    logger.info("Protected greeting accessed by %s", principal.id)
    return {
        "message": "Hello authenticated user!",
        "user": {
            "id": str(principal.id),
            "email": principal.email,
            "name": principal.name,
            "roles": sorted(principal.roles),
        },
        **_request_info(request),
    }
