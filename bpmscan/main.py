"""FastAPI application - serves the tempo analysis API."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bpmscan.api.upload import router as upload_router
from bpmscan.config import settings

app = FastAPI(title="bpmscan", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(upload_router, prefix="/api")


@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "version": app.version,
        "bpm_range": [settings.min_bpm, settings.max_bpm],
    }


def run():
    import uvicorn
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    uvicorn.run("bpmscan.main:app", host=settings.host, port=settings.port)
