from typing import Optional
import hmac

from fastapi import HTTPException

from ..settings import settings


def require_admin(token: Optional[str]) -> None:
    expected = settings.admin_token
    if not expected:
        # Open in dev; prod must configure ADMIN_TOKEN
        if settings.environment == "prod":
            raise HTTPException(status_code=403, detail="Forbidden")
        return
    if not token or not hmac.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
