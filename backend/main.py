"""
Referral Credit Network — FastAPI Backend
===========================================

REST API for the referral credit network and composite scoring engine.

Routers:
    Identity  — /identities, /wallets
    Scores    — /scores
    Referral  — /referral (invitations, graph, credit events)
    Network   — /network (stats, leaderboard)
    Demo      — /demo/reset (DEMO_MODE only)

Run:
    uvicorn backend.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import Settings, build_engine
from backend.routers import demo, identity, network, referral, scores
from scoring.chain_reader import ChainReader

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("backend")

VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    chain_reader: Optional[ChainReader] = None,
) -> FastAPI:
    """Build the API. The engine lives from startup to shutdown."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.engine = build_engine(settings, chain_reader)
        logger.info("Engine started (demo_mode=%s)", settings.demo_mode)
        try:
            yield
        finally:
            app.state.engine.close()
            logger.info("Engine stopped")

    app = FastAPI(
        title="Referral Credit Network API",
        description="Identities, wallet portfolios, referral invitations and composite credit scores",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(identity.router)
    app.include_router(scores.router)
    app.include_router(referral.router)
    app.include_router(network.router)
    if settings.demo_mode:
        app.include_router(demo.router)

    @app.get("/")
    async def root():
        return {
            "name": "Referral Credit Network API",
            "version": VERSION,
            "demo_mode": settings.demo_mode,
        }

    return app


app = create_app()
