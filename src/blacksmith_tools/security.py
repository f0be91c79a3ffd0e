# src/blacksmith_tools/security.py
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from blacksmith_tools.config import CONFIG

# auto_error=False so a missing header is allowed when no key is configured.
security = HTTPBearer(auto_error=False)


async def verify_api_key(credentials: HTTPAuthorizationCredentials = Security(security)):
    """
    Verifies the API key from the Authorization header (Bearer token).
    If 'api_key' is set in config.conf [Auth] section, it enforces authentication.
    If 'api_key' is empty or missing, it allows access without auth.
    """
    expected_api_key = CONFIG.get("Auth", "api_key", fallback="").strip()

    if not expected_api_key:
        return True

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if credentials.credentials != expected_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API Key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return True
