from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from research_agent.api.routes import research
from research_agent.config import missing_credentials, settings
from research_agent.services import logger as log_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    missing = missing_credentials()
    if missing:
        log_service.logger.warning(
            f"Missing required environment variables: {', '.join(missing)}; "
            "research requests will fail until they are set"
        )
    yield


app = FastAPI(
    title="Research Agent",
    description="Autonomous multi-round deep research powered by Firecrawl and Gemini",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list or ["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Routes
app.include_router(research.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "research-agent"}


def serve() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("research_agent.main:app", host="0.0.0.0", port=8000)
