from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from surveyco.core.config import settings
from surveyco.core.db import create_tables, engine
from surveyco.core.errors import register_error_handlers
from surveyco.core.logging import configure_logging
from surveyco.api.surveys import router as surveys_router
from surveyco.api.pages import router as pages_router
from surveyco.api.questions import router as questions_router
from surveyco.api.collectors import router as collectors_router
from surveyco.api.responses import router as responses_router

configure_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on startup
    if settings.create_tables:
        await create_tables()
    yield
    await engine.dispose()

app = FastAPI(title="Surveyco API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(surveys_router)
app.include_router(pages_router)
app.include_router(questions_router)
app.include_router(collectors_router)
app.include_router(responses_router)

@app.get("/health")
def health():
    return {"ok": True}
