from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from refugio.api.v1.router import router as v1_router
from refugio.core.config import settings
from refugio.core.logging import configure_logging
from refugio.middleware.request_id import RequestIdMiddleware
from refugio.middleware.security_headers import SecurityHeadersMiddleware

configure_logging()

app = FastAPI(title="Refugio API")

# Starlette runs the last added middleware first, so RequestId is outermost
# and its header lands on CORS preflight responses too.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIdMiddleware)

Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/")
def root():
    return {"name": "Refugio API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "ok", "data_backend": settings.data_backend}


app.include_router(v1_router, prefix="/v1")
