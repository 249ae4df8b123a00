"""
FastAPI application entrypoint. Run with: uvicorn cyberx_api.main:app --reload --port 8000

Routes are mounted at root (no /api prefix):
  - Auth:      POST /auth/login, GET /auth/me
  - Docs:      POST /swagger/token, GET /docs, GET /openapi.json (documentation token required)
  - Greeting:  GET /hello, GET /protected/hello
  - Users:     /users ...   Roles: /roles ...   Tasks: /tasks ...   Exercises: /exercises ...
  - Health:    GET /health

Errors are rendered as {success: false, error, message, code?, ...} (see cyberx_api.errors).
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cyberx_api.config import SERVICE_NAME, settings
from cyberx_api.database import init_db
from cyberx_api.errors import ApiError, AuthenticationError
from cyberx_api.models.types import utcnow
from cyberx_api.schemas.common import ErrorResponse
from cyberx_api.api.auth import router as auth_router
from cyberx_api.api.docs_auth import router as docs_router
from cyberx_api.api.exercises import router as exercises_router
from cyberx_api.api.greeting import router as greeting_router
from cyberx_api.api.roles import router as roles_router
from cyberx_api.api.tasks import router as tasks_router
from cyberx_api.api.users import router as users_router

logger = logging.getLogger("cyberx_api.main")

# Default /docs and /openapi.json are replaced by token-guarded routes in api/docs_auth.py
app = FastAPI(
    title="CyberX API",
    description="Users, roles, tasks and exercises behind JWT authentication and role-based access control.",
    version="1.0.0",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins if _origins else ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error bodies share one shape; list it once for the protected resource routers
_error_responses = {code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 423)}

app.include_router(auth_router)
app.include_router(docs_router)
app.include_router(greeting_router)
for _router in (users_router, roles_router, tasks_router, exercises_router):
    app.include_router(_router, responses=_error_responses)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    if exc.status_code >= 500:
        logger.error("%s %s -> %s %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Validation Error",
            "message": "Invalid request data",
            "code": "VALIDATION_ERROR",
            "details": details,
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.debug else "Something went wrong on our end. Please try again later."
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal Server Error", "message": message},
    )


@app.on_event("startup")
def startup():
    """Configure logging, init SQLite DB and report secret status. Fail fast if production lacks JWT_SECRET."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not settings.jwt_secret:
        logger.critical("JWT_SECRET is not set. Login and protected routes will return CONFIG_ERROR.")
        if settings.is_production:
            raise RuntimeError("JWT_SECRET must be set in production. Set JWT_SECRET in env or .env.")
    if not settings.swagger_secret:
        logger.warning("SWAGGER_SECRET is not set; POST /swagger/token will return CONFIG_ERROR.")
    if not settings.jwt_swagger_secret:
        if settings.jwt_swagger_allow_api_secret:
            logger.warning("JWT_SWAGGER_SECRET not set; documentation tokens will be signed with JWT_SECRET.")
        else:
            logger.warning("JWT_SWAGGER_SECRET is not set; documentation routes will return CONFIG_ERROR.")
    init_db()


@app.get("/health")
def health():
    logger.debug("Health check")
    return {"status": "OK", "service": SERVICE_NAME, "timestamp": utcnow().isoformat()}
