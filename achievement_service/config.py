"""
Configuration settings for Achievements Service
"""
from functools import lru_cache
from typing import Optional, List, Dict
from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # App
    APP_NAME: str = "Achievements Service"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"
    
    # AWS
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None  # Only for LocalStack, ECS uses IAM roles
    AWS_SECRET_ACCESS_KEY: Optional[str] = None  # Only for LocalStack, ECS uses IAM roles
    
    # DynamoDB (catalog, ledger, completion and forum facts share one table)
    DYNAMODB_ENDPOINT: Optional[str] = None  # None uses AWS, set for LocalStack
    DYNAMODB_ACHIEVEMENTS_TABLE: str = "course-platform-dev-achievements"
    
    # Content Service (module / topic hierarchy)
    CONTENT_SERVICE_URL: str = "http://localhost:8001/api/v1"
    CONTENT_SERVICE_TIMEOUT_SECONDS: float = 10.0
    
    # Achievements
    ACHIEVEMENTS_TIMEZONE: str = "UTC"  # Calendar days and hour-of-day are evaluated here
    XP_PER_LEVEL: int = 100
    MODULE_ACHIEVEMENTS: Dict[str, int] = {
        "1": 6,  # Lógica & Algoritmos -> Base Forte
        "2": 7,  # C++ Fundamentos Fortes -> C++ Warrior
        "3": 8,  # Python Aplicado -> Python Master
        "4": 9,  # Projetos Práticos -> Projetos Completos
    }
    ALL_MODULES_ACHIEVEMENT_ID: int = 10  # Full Stack Beginner
    
    # Notifications
    AUTO_MARK_SEEN: bool = True
    MARK_SEEN_MAX_ATTEMPTS: int = 3
    MARK_SEEN_RETRY_DELAY_SECONDS: float = 0.5
    
    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    
    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Returns cached settings instance (singleton)"""
    return Settings()
