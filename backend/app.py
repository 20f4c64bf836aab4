import logging
from pathlib import Path

from fastapi import FastAPI

from backend import services
from backend.routes import router
from rpg_chronicle.config import data_dir as default_data_dir
from rpg_chronicle.synthesis import Synthesizer

logger = logging.getLogger(__name__)


def create_app(data_dir: Path | None = None, synthesizer: Synthesizer | None = None) -> FastAPI:
    resolved = data_dir or default_data_dir()
    services.init_services(resolved, synthesizer=synthesizer)
    logger.info("Summary data directory: %s", resolved)

    app = FastAPI(title="RPG Chronicle")
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
