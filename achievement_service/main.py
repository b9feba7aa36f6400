"""Achievements Service API - FastAPI with DynamoDB"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from achievement_service.config import get_settings
from achievement_service import dynamo
from achievement_service.routers import achievements

settings = get_settings()
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Achievements Service API",
    description="Gamified achievements for the course platform",
    version=settings.VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

app.include_router(achievements.router, prefix="/api/v1")

app.add_middleware(CORSMiddleware, allow_origins=settings.CORS_ORIGINS, allow_credentials=True, allow_methods=["*"], allow_headers=["*"])


@app.get("/")
async def root():
    return {"service": "achievements-service", "status": "running", "version": settings.VERSION}


@app.get("/health")
async def health():
    try:
        dynamo.db_client.achievements_table.meta.client.describe_table(
            TableName=settings.DYNAMODB_ACHIEVEMENTS_TABLE
        )
        return {"status": "healthy", "dynamodb": "connected"}
    except Exception as e:
        logger.warning(f"Health check DynamoDB connection failed: {str(e)}")
        # Healthy anyway for ALB health checks; DynamoDB may be temporarily unavailable
        return {"status": "healthy", "dynamodb": "unavailable", "warning": str(e)[:100]}
