from pydantic import BaseModel, Field


class CleanupResult(BaseModel):
    """Rows removed by one sweep."""

    deleted_magic_links: int = Field(..., description="Expired or already redeemed magic links removed", ge=0)
    deleted_sessions: int = Field(..., description="Expired sessions removed", ge=0)
