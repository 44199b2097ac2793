# config.py
"""
SkyDesk Service Configuration
Loads settings from environment variables
"""

import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment"""
    
    # Language-model chat endpoint (takes precedence over the OpenAI backend)
    CHAT_ENDPOINT_URL: str = os.getenv("CHAT_ENDPOINT_URL", "")
    
    # Policy vector-search endpoint
    POLICY_SEARCH_URL: str = os.getenv("POLICY_SEARCH_URL", "")
    
    # OpenAI Configuration
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    
    # Empty means the httpx client default
    HTTP_TIMEOUT_SECONDS: str = os.getenv("HTTP_TIMEOUT_SECONDS", "")
    
    # Conversation / search behaviour
    CHAT_HISTORY_LIMIT: int = int(os.getenv("CHAT_HISTORY_LIMIT", "10"))
    SEARCH_RESULT_LIMIT: int = int(os.getenv("SEARCH_RESULT_LIMIT", "5"))
    
    # Mock inventory
    FLIGHT_COUNT: int = int(os.getenv("FLIGHT_COUNT", "20"))
    DEFAULT_CUSTOMER_ID: str = os.getenv("DEFAULT_CUSTOMER_ID", "CUST001")
    RELEASE_SEATS_ON_CANCEL: bool = _env_bool("RELEASE_SEATS_ON_CANCEL", "true")
    
    # Redis snapshot sink (write-only, disabled when empty)
    REDIS_URL: str = os.getenv("REDIS_URL", "")
    
    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    API_ENV: str = os.getenv("API_ENV", "development")
    
    # CORS Configuration
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
    
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
    
    @property
    def http_timeout(self) -> Optional[float]:
        """Explicit HTTP timeout in seconds, None to keep the client default"""
        if not self.HTTP_TIMEOUT_SECONDS:
            return None
        return float(self.HTTP_TIMEOUT_SECONDS)
    
    @property
    def use_openai(self) -> bool:
        return not self.CHAT_ENDPOINT_URL and bool(self.OPENAI_API_KEY)


# Global settings instance
settings = Settings()
