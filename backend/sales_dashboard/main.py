from __future__ import annotations
from time import perf_counter

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .utils.logger import get_logger, setup_logging
from .routers import datasets

setup_logging()
logger = get_logger("app")

app = FastAPI(title="Sales Dashboard API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def root() -> dict:
    return {
        "message": "Sales Dashboard API",
        "endpoints": [
            "/datasets",
            "/datasets/upload",
            "/datasets/{dataset_id}",
            "/datasets/{dataset_id}/dashboard",
            "/datasets/{dataset_id}/quality",
            "/datasets/{dataset_id}/clean/preview",
            "/datasets/{dataset_id}/clean",
            "/datasets/{dataset_id}/export/csv",
        ],
        "docs": "/docs",
    }


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = perf_counter()
    client = request.client.host if request.client else "-"
    try:
        response = await call_next(request)
        duration = (perf_counter() - start) * 1000
        logger.info(
            f"{client} {request.method} {request.url.path} -> {response.status_code} ({duration:.1f} ms)"
        )
        return response
    except Exception as e:  # noqa: BLE001
        duration = (perf_counter() - start) * 1000
        logger.exception(
            f"Exception on {request.method} {request.url.path} after {duration:.1f} ms: {e}"
        )
        raise


app.include_router(datasets.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8010)
