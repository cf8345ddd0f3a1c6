from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
import logging

from fainatic.core.config import settings
from fainatic.core.exceptions import BaseAppException
from fainatic.api.v1.api import api_router

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

api_description = """
## Fainatic - Bank Statement Analysis

### 📋 Workflow

1. **Parse a statement**: `POST /files/process` with a CSV, Excel, PDF or image file
   (or `POST /files/upload` followed by `GET /files/process?file_id=...`)
2. **Analyze**: `POST /analysis/base` with the returned transactions
3. **Recommendations**: `POST /analysis/recommendations` for AI savings advice

### ⚠️ Errors

Every failure is returned as `{"error": {"code", "message", "details", "retryable"}}`
with a stable machine-readable `code` such as `UNSUPPORTED_FILE_TYPE`,
`MISSING_REQUIRED_COLUMN` or `NO_VALID_RECORDS`.
"""

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description=api_description,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# GZip compression for large JSON responses
app.add_middleware(GZipMiddleware, minimum_size=500)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed [{exc.error_code}] {exc.message}: {exc.details}")
    else:
        logger.warning(f"⚠️ {request.method} {request.url.path} rejected [{exc.error_code}] {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


# Include API router
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": f"{settings.APP_NAME} API is running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
