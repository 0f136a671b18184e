from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SessionContext:
    """Authenticated shop session handed to the engine by the API layer.

    Attributes:
        shop: Shop domain; owner scope for jobs, artifacts and templates
        access_token: Commerce API credential
        seller_jurisdiction: Store state code override for this request
    """

    shop: str
    access_token: str
    seller_jurisdiction: str | None = None
    created_at: datetime | None = None
