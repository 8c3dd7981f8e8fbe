import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cashlog.core.config import settings
from cashlog.core.errors import Forbidden, Unauthorized, ValidationError
from cashlog.core.security import Principal, decode_token, principal_from_claims
from cashlog.db.session import SessionLocal

bearer = HTTPBearer(auto_error=False)

def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()

def current_user(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> Principal:
    if creds is None or not creds.credentials:
        raise Unauthorized()
    try:
        return principal_from_claims(decode_token(creds.credentials))
    except jwt.PyJWTError as e:
        raise Unauthorized() from e

def require_org(u: Principal = Depends(current_user)) -> Principal:
    if not u.organization_id:
        raise Forbidden("No organization selected", code="no_organization")
    return u

def org_display_name(u: Principal) -> str:
    return u.org_name or settings.org_display_name

def page_params(page: int, page_size: int | None) -> tuple[int, int]:
    size = page_size or settings.default_page_size
    return max(page, 1), max(1, min(size, settings.max_page_size))

def type_filter(value: str | None) -> str | None:
    """Normalise a `type` query filter; `all` or empty means no filter."""
    if not value or value == "all":
        return None
    if value not in ("income", "expense"):
        raise ValidationError({"type": ["type must be one of: all, income, expense"]})
    return value
