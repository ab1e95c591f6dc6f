# main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .config import CORS_ORIGINS, PORT
from .database import engine, init_models
from .errors import register_exception_handlers
from .logger_config import configure_logging
from .routes import auth_router, bookings_router, events_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("App starting up...")
    await init_models()
    yield
    logger.info("App shutting down...")
    await engine.dispose()


app = FastAPI(title="Event Booking API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

register_exception_handlers(app)

for router in (auth_router, events_router, bookings_router):
    app.include_router(router, prefix="/api")


@app.get("/api/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("eventbook.main:app", host="0.0.0.0", port=PORT)
