from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from judge.core.config import get_settings
from judge.core.logging import setup_logging
from judge.api.routers import run as r_run
from judge.api.routers import submissions as r_submissions
from judge.api.routers import ws as r_ws

settings = get_settings()
setup_logging(settings.LOG_LEVEL)

app = FastAPI(title=settings.APP_NAME)
app.add_middleware(
    CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]
)

app.include_router(r_run.router, prefix=settings.API_PREFIX)
app.include_router(r_submissions.router, prefix=settings.API_PREFIX)
app.include_router(r_ws.router, prefix=settings.API_PREFIX)


@app.get(f"{settings.API_PREFIX}/health")
async def health():
    return {"ok": True}
