from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from banyan.config import settings
from banyan.db import init_all_databases


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_all_databases(settings.banyan_data_dir)
    yield


def create_app() -> FastAPI:
    application = FastAPI(
        title="Banyan Review Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from banyan.routers import decks, health, progress, study

    application.include_router(health.router)
    application.include_router(decks.router, prefix="/decks", tags=["decks"])
    application.include_router(study.router, prefix="/study", tags=["study"])
    application.include_router(progress.router, tags=["progress"])

    return application


app = create_app()
