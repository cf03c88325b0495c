from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings
from .core.logging import configure_logging
from .api.routes_briefs import router as briefs_router
from .api.routes_admin import router as admin_router

configure_logging()
settings = get_settings()

app = FastAPI(title="Civic Briefs API")

# Browsers never call this API directly; the web front end proxies to it.
if settings.ENV.lower() != "prod":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        allow_credentials=False,
    )

app.include_router(briefs_router, prefix=settings.API_PREFIX)
app.include_router(admin_router, prefix=settings.API_PREFIX)


@app.get("/healthz")
def healthz():
    return {"status": "ok"}
