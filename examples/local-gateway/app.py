"""Local InferGate: FastAPI gateway backed by a SQLite ledger.

Run with:
    HUGGINGFACE_API_KEY=hf_xxx uvicorn app:app --reload
"""

from infergate.adapters.fastapi_app import create_app
from infergate.config import Settings

settings = Settings.from_env()
app = create_app(settings)


@app.get("/")
def index() -> dict:
    return {
        "name": "InferGate",
        "upstream": settings.upstream_base_url,
        "endpoints": [
            "/api/health",
            "/api/models",
            "/api/inference",
            "/api/inference/history",
            "/api/inference/admin/history",
            "/api/inference/admin/metrics",
        ],
    }
