#!/usr/bin/env python3
"""
Battle Seoul - backend entry point
"""

import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from battle_seoul.core.config import settings
from battle_seoul.api import api_router
from battle_seoul.core.database import init_db
from battle_seoul.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Battle matching and voting API",
    version=settings.VERSION
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(api_router, prefix="/api")

@app.on_event("startup")
async def startup_event():
    """Initialise logging and the database"""
    configure_logging(service="battle-seoul-api", log_level=settings.LOG_LEVEL)
    logger.info("starting Battle Seoul backend")
    await init_db()

@app.get("/")
async def root():
    """Root health check"""
    return {"message": "Battle Seoul backend is running", "status": "healthy"}

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "battle-seoul-api"}

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
