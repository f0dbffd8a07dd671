import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Environment is loaded by Pydantic Settings (see mentorhub.core.settings).
from mentorhub.api import register_routes
from mentorhub.core.dependencies import get_seatable_client
from mentorhub.core.exceptions import register_exception_handlers
from mentorhub.core.logging import setup_logging
from mentorhub.core.settings import settings

# Initialize logging early so all modules inherit the handlers/level
setup_logging(settings.log_level or settings.log_level_fallback)

app = FastAPI(title="mentorhub API")
register_exception_handlers(app)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)

logger = logging.getLogger(__name__)
logger.info("mentorhub API initialized")


@app.on_event("shutdown")
async def _close_seatable_client() -> None:
    if get_seatable_client.cache_info().currsize:
        await get_seatable_client().aclose()
