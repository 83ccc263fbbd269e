"""
Dependencies for authentication, role checks and idempotency.
"""

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional, Dict, Any
import hashlib
import json
from sqlmodel import Session
from pet_insurance.db import get_session
from pet_insurance.models import User, IdempotencyKey

security = HTTPBearer(auto_error=False)

STAFF_ROLES = ("agent", "admin")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_session)
) -> User:
    """
    Resolve the caller from the API key in the Authorization header.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )

    user = session.query(User).filter(User.api_key == credentials.credentials).first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated"
        )

    return user


def require_roles(*roles: str):
    """
    Dependency factory allowing only the given roles. Admins always pass.
    """
    async def check_role(user: User = Depends(get_current_user)) -> User:
        if user.role != "admin" and user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {user.role} cannot access this resource"
            )
        return user

    return check_role


def ensure_can_access(user: User, owner_id: int) -> None:
    """Owners see their own records; agents and admins see everything."""
    if user.role in STAFF_ROLES:
        return
    if user.id != owner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )


def check_idempotency_key(
    request: Request,
    user: User,
    request_hash: str,
    session: Session
) -> Optional[Dict[str, Any]]:
    """
    Check idempotency key for duplicate requests.

    Keys are scoped to the calling user. Returns None for a new request and
    the stored response for a repeat; reusing a key with a different body
    is rejected with 422.
    """
    idempotency_key = request.headers.get("X-Idempotency-Key")

    if not idempotency_key:
        return None

    cached_response = session.query(IdempotencyKey).filter(
        IdempotencyKey.key == idempotency_key,
        IdempotencyKey.user_id == user.id,
        IdempotencyKey.method == request.method,
        IdempotencyKey.path == request.url.path
    ).first()

    if cached_response is None:
        return None

    if cached_response.request_hash != request_hash:
        raise HTTPException(
            status_code=422,
            detail="Idempotency key was already used with a different request body"
        )

    return json.loads(cached_response.response_json)


def store_idempotency_response(
    idempotency_key: str,
    user: User,
    method: str,
    path: str,
    request_hash: str,
    response_data: Dict[str, Any],
    session: Session
) -> None:
    """
    Store response for idempotency key to prevent duplicate processing.
    """
    if not idempotency_key:
        return

    idempotency_record = IdempotencyKey(
        key=idempotency_key,
        user_id=user.id,
        method=method,
        path=path,
        request_hash=request_hash,
        response_json=json.dumps(response_data, default=str)
    )

    session.add(idempotency_record)
    session.commit()


def generate_request_hash(request_body: Dict[str, Any]) -> str:
    """Generate a hash for request body to detect duplicates."""
    # Sort keys to ensure consistent hashing
    sorted_body = json.dumps(request_body, sort_keys=True, default=str)
    return hashlib.sha256(sorted_body.encode()).hexdigest()
