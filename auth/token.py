import logging
from datetime import datetime
from typing import Optional

import jwt
from jwt.exceptions import PyJWTError as JWTError

from models import VerificationCode

ALGORITHM = "HS256"
VERIFY_TOKEN_TYPE = "signup_verify"

logger = logging.getLogger(__name__)


def create_verify_token(secret: str, code: VerificationCode) -> str:
    """
    Short-lived proof that a code was checked, for the two-phase verify flow.
    Bound to the code row and expiring together with it.
    """
    to_encode = {
        "sub": str(code.id),
        "email": code.email,
        "purpose": code.purpose.value,
        "exp": code.expires_at,
        "type": VERIFY_TOKEN_TYPE,
    }
    token = jwt.encode(to_encode, secret, algorithm=ALGORITHM)
    logger.debug(f"Verify token created for code {code.id} expiring at {code.expires_at}")
    return token


def decode_verify_token(token: str, secret: str, now: Optional[datetime] = None) -> Optional[dict]:
    """
    Decode a verify token. When `now` is given, expiry is checked against it
    instead of the system clock.
    """
    options = {"verify_exp": now is None}
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM], options=options)
    except JWTError as e:
        logger.warning(f"Failed to decode verify token: {e}")
        return None
    if payload.get("type") != VERIFY_TOKEN_TYPE:
        logger.warning("Token is not a verify token")
        return None
    if now is not None and payload.get("exp", 0) <= now.timestamp():
        logger.warning("Verify token has expired")
        return None
    return payload


def verify_token_matches(token: str, secret: str, code: VerificationCode,
                         now: Optional[datetime] = None) -> bool:
    payload = decode_verify_token(token, secret, now)
    if not payload:
        return False
    return (
        payload.get("sub") == str(code.id)
        and payload.get("email") == code.email
        and payload.get("purpose") == code.purpose.value
    )
