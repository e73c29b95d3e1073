from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class HealthResponse(BaseModel):
    """Health check response model"""
    status: str = Field(description="Service status: healthy once charts are loaded, loading before")
    version: str = Field(description="API version")
    cycle: Optional[str] = Field(None, description="d-TPP cycle being served")
    timestamp: datetime = Field(default_factory=datetime.now, description="Health check timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "cycle": "2406",
                "timestamp": "2024-06-20T12:00:00Z"
            }
        }
