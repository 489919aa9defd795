from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flockledger.core.config import settings
from flockledger.core.logging import CorrelationIdMiddleware, setup_logging
from flockledger.db import init_db
from flockledger.routers import breakeven, records

setup_logging()

app = FastAPI(title="Flockledger Poultry Farm Finance")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(records.router)
app.include_router(breakeven.router)


@app.on_event("startup")
def on_startup():
    init_db()


@app.get("/")
def read_root():
    return {"message": "Flockledger break-even analysis API"}
