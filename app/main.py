import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings, validate_settings
from app.core.logging import configure_logging
from app.api.events import router as api_router
from app.dependencies import get_conversation_store, get_orchestrator
from orchestration.orchestrator import ConversationOrchestrator

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # ConfigurationError halts startup
    validate_settings(settings)

    store = get_conversation_store()
    await store.open(provision_schema=True)
    logger.info(f"{settings.service_name} started (backend: {store.backend_name})")
    yield
    await store.close()

app = FastAPI(
    title=settings.service_name,
    lifespan=lifespan
)

# CORS middleware - allow frontend to call API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/v1")

@app.get("/health")
async def health(orchestrator: ConversationOrchestrator = Depends(get_orchestrator)):
    return {"status": "ok", **orchestrator.describe()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port)
