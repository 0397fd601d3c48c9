"""
Splitledger Backend API

A FastAPI backend for personal expenses, shared group expenses and settlements.
This module sets up the app and mounts routers - all endpoint logic is in routers/.
"""

import logging
import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import models
from database import engine
from exceptions import LedgerError

# Import routers
from routers import groups, members, group_expenses, balances, expenses, activities


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create database tables
models.Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(
    title="Splitledger API",
    description="API for personal expenses, group expense splitting and settlements",
    version="1.0.0"
)

# CORS middleware
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health")
def health_check():
    return {"status": "ok", "message": "Splitledger API is running"}


# Include routers
app.include_router(groups.router)
app.include_router(members.router)
app.include_router(group_expenses.router)
app.include_router(balances.router)
app.include_router(expenses.router)
app.include_router(activities.router)
