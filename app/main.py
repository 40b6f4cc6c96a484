from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.api.people import router as people_router
from app.jobs.scheduler import start_dispatcher, shutdown_dispatcher
from app.services.redis_client import close_redis

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic
    start_dispatcher()
    yield
    # Shutdown logic: let in-flight populations finish
    shutdown_dispatcher()
    close_redis()

app = FastAPI(lifespan=lifespan)

# include routes
app.include_router(people_router)


@app.get("/health", tags=["Health"])
def health() -> dict:
    return {"status": "ok"}
