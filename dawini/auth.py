import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import JWT_ALGORITHM, JWT_AUDIENCE, JWT_SECRET
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

USER_TYPES = ("patient", "doctor", "pharmacist", "admin")


def verify_access_token(token: str) -> dict:
    """
    Verify a bearer token issued by the accounts service.
    Checks the HMAC signature, expiry and (when configured) audience.
    """
    options = {"verify_aud": bool(JWT_AUDIENCE)}
    try:
        return jose_jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            options=options,
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token") from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the bearer token, creating the local record on first sight"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"Malformed token received, token length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    claims = verify_access_token(token)

    external_uid = claims.get("sub") or claims.get("user_id") or claims.get("userId")
    user_type = claims.get("user_type") or claims.get("userType") or "patient"
    email = claims.get("email")
    name = claims.get("name")

    if not external_uid:
        logger.error(f"Token missing subject claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    if user_type not in USER_TYPES:
        logger.warning(f"Token carries unknown user type: {user_type}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = db.query(User).filter(User.external_uid == str(external_uid)).first()

    if not user:
        logger.info(f"Registering local record for {user_type} {external_uid}")
        user = User(
            external_uid=str(external_uid),
            email=email,
            full_name=name,
            user_type=user_type,
        )
        db.add(user)
        try:
            db.commit()
            db.refresh(user)
        except Exception as e:
            db.rollback()
            # Another request created the same record between the lookup and the insert
            user = db.query(User).filter(User.external_uid == str(external_uid)).first()
            if not user:
                logger.error(f"Failed to register user {external_uid}: {e}")
                raise HTTPException(status_code=500, detail="Failed to load user") from e
    elif (
        user.user_type != user_type
        or (email and user.email != email)
        or (name and user.full_name != name)
    ):
        # The accounts service owns these fields; mirror its latest values
        user.user_type = user_type
        user.email = email or user.email
        user.full_name = name or user.full_name
        db.commit()
        db.refresh(user)

    if not user.is_active:
        logger.warning(f"Inactive user {user.id} attempted access")
        raise HTTPException(status_code=401, detail="User not found or inactive")

    logger.debug(f"User authenticated: {user.id} ({user.user_type})")
    return user


def require_user_type(*allowed_types: str):
    """
    Dependency factory restricting an endpoint to some user types.

    Example:
        @router.post("", dependencies=[Depends(require_user_type("doctor"))])
    """

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.user_type not in allowed_types:
            logger.warning(
                f"User {user.id} ({user.user_type}) denied, requires one of {allowed_types}"
            )
            raise HTTPException(status_code=403, detail="Access denied. Insufficient permissions.")
        return user

    return checker
