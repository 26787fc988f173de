"""
Casefile - FastAPI Application Entry Point
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from casefile import __version__
from casefile.api import game

logging.basicConfig(
    level=os.getenv("CASEFILE_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Casefile",
    description="Deterministic rules engine for detective text adventures",
    version=__version__,
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(game.router, prefix="/api/game", tags=["game"])


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "ok", "name": "Casefile", "version": __version__}


def serve():
    """Run the API with uvicorn (CASEFILE_HOST / CASEFILE_PORT)"""
    import uvicorn

    uvicorn.run(
        "casefile.main:app",
        host=os.getenv("CASEFILE_HOST", "127.0.0.1"),
        port=int(os.getenv("CASEFILE_PORT", "8000")),
    )
