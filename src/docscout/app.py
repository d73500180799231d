import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from .api.routes import router as api_router
from .config.settings import Settings
from .config.settings import settings as default_settings
from .core.orchestrator.session import SessionOrchestrator
from .runtime.progress import SessionRegistry, get_progress_store
from .runtime.storage import DocumentationStore
from .telemetry import init_telemetry, shutdown_telemetry

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    registry: SessionRegistry | None = None,
    orchestrator: SessionOrchestrator | None = None,
) -> FastAPI:
    cfg = settings or default_settings
    doc_store = DocumentationStore(Path(cfg.docs_root), Path(cfg.artifacts_root))
    if registry is None:
        store = get_progress_store(cfg.progress_backend, cfg.redis_url, cfg.session_retention_seconds)
        registry = SessionRegistry(store, retention_seconds=cfg.session_retention_seconds, doc_store=doc_store)
    if orchestrator is None:
        orchestrator = SessionOrchestrator(registry, doc_store, cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_telemetry(app)
        stop = asyncio.Event()
        sweeper = asyncio.create_task(registry.run_sweeper(cfg.sweep_interval_seconds, stop))
        try:
            yield
        finally:
            stop.set()
            await orchestrator.shutdown()
            await sweeper
            shutdown_telemetry()

    app = FastAPI(title="DocScout API", version="0.1.0", lifespan=lifespan)
    app.state.settings = cfg
    app.state.registry = registry
    app.state.doc_store = doc_store
    app.state.orchestrator = orchestrator
    app.include_router(api_router)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    return app


app = create_app()


def main() -> None:
    import uvicorn

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    host = os.getenv("API_HOST", "0.0.0.0")  # nosec B104 - container binding
    port = int(os.getenv("API_PORT", "8000"))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
