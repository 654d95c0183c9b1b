import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from backend import engine
from backend.routes import router
from choicecraft.assets import AssetGenerator
from choicecraft.llm import LLM

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


def create_app(
    data_dir: Path | None = None,
    llm: LLM | None = None,
    assets: AssetGenerator | None = None,
) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    engine.init_engine(resolved, llm=llm, assets=assets)

    app = FastAPI(title="ChoiceCraft")
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
