from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import research
from app.config import settings
from app.services.database import close_research_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_research_store()


app = FastAPI(
    title="Lead Research",
    description="Agentic deep research over property insurance leads",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(research.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "lead-research"}
