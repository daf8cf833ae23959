import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from quantumsim.db.init_db import init_db
from quantumsim.api.routers.games import router as games_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # конфигурация логов только на уровне приложения, библиотека её не трогает
    logging.basicConfig(level=logging.INFO)
    init_db()
    yield


app = FastAPI(title="Quantum Rules Engine", lifespan=lifespan)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(games_router)
