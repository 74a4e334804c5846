from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import logging

load_dotenv()  # Load environment variables from .env file

from cnote.api.v1.router import api_router
from arq import create_pool
from cnote.common.common_message import CommonMessage
from cnote.common.exceptions import CnoteError
from cnote.common.response_common import ResponseCommon
from cnote.core.redis_config import REDIS_SETTINGS

logger = logging.getLogger(__name__)

app = FastAPI(title="cnote API", version="1.0.0", docs_url="/docs")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CnoteError)
async def cnote_error_handler(request: Request, exc: CnoteError):
    if exc.http_status >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return ResponseCommon.from_exception(exc).to_response()


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    # Drop the leading "body"/"query"/"path" segment
    location = [str(part) for part in first.get("loc", ())][1:]
    field = ".".join(location) or None
    message = f"{field}: {first.get('msg')}" if field else CommonMessage.REQUEST_VALIDATION_FAILED
    return ResponseCommon.error_response(
        message=message,
        code=status.HTTP_400_BAD_REQUEST,
        data={"field": field},
    ).to_response()


# Include API routes
app.include_router(api_router)


@app.on_event("startup")
async def startup_event():
    app.state.arq_pool = await create_pool(REDIS_SETTINGS)
    logger.info("ARQ pool connected to %s:%s", REDIS_SETTINGS.host, REDIS_SETTINGS.port)


@app.on_event("shutdown")
async def shutdown_event():
    if hasattr(app.state, "arq_pool"):
        await app.state.arq_pool.close()


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
