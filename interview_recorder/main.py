import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from interview_recorder.config import Settings, get_settings
from interview_recorder.routes.health import router as health_router
from interview_recorder.routes.session import router as session_router
from interview_recorder.services.coordinator import SessionCoordinator


def create_app(
    settings: Settings | None = None,
    coordinator: SessionCoordinator | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    coordinator = coordinator or SessionCoordinator(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Stop the background executor on shutdown.  Jobs still queued are dropped."""
        yield
        coordinator.shutdown()

    application = FastAPI(
        title="Interview Recorder API",
        version="0.1.0",
        description="Record interview answers per question, store them per session, "
                    "and transcribe them in the background.",
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.coordinator = coordinator

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(session_router)
    application.include_router(health_router)

    # Recorded answers are played back from /uploads/<folder>/Q<i>.webm
    uploads_root = Path(settings.uploads_root)
    uploads_root.mkdir(parents=True, exist_ok=True)
    application.mount("/uploads", StaticFiles(directory=str(uploads_root)), name="uploads")

    return application


app = create_app()
