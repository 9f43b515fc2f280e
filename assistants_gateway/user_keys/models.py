"""User-supplied credential record."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class UserKeyRecord:
    user_id: str
    endpoint: str  # e.g. "azureAssistants"
    value: str  # JSON string: {"apiKey": ..., "baseURL": ...}
    expires_at: datetime | None = None  # None = never expires
