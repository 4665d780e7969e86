import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from .core.config import settings
from .core.errors import ChatError, chat_error_handler
from .routers.api import api_router
from .db.session import Base, engine
from .services.scheduler import get_scheduler
from . import models  # noqa: F401  (registers tables on Base)

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Chattrix API")

@app.on_event("startup")
async def on_startup():
    Base.metadata.create_all(bind=engine)
    # timers are lost on restart; re-arm everything still in the future
    get_scheduler().recover_all()

@app.on_event("shutdown")
async def on_shutdown():
    get_scheduler().shutdown()


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("store.error path=%s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=503, content={"detail": "Storage backend unavailable", "code": "backend_error"})

app.add_exception_handler(ChatError, chat_error_handler)
app.add_exception_handler(SQLAlchemyError, store_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
def health():
    return {"status": "ok"}

app.include_router(api_router)
