# backoffice/utils/auth.py
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, Depends, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from backoffice.database.db import get_db
from backoffice.models import models
from backoffice.config import SECRET_KEY, JWT_ALGORITHM, JWT_EXPIRE_MINUTES

# El login vive en el servicio de identidad; acá sólo se validan tokens
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login")


def _jwt_encode(payload: dict, minutes: int) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode = payload.copy()
    to_encode.update({"exp": exp})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def create_access_token(user: models.User) -> str:
    return _jwt_encode({"sub": str(user.id), "scope": "access"}, JWT_EXPIRE_MINUTES)


def decode_token(token: str) -> dict:
    return jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No autorizado",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        if payload.get("scope") != "access":
            raise cred_exc
        sub = payload.get("sub")
        if sub is None:
            raise cred_exc
        user_id = int(sub)
    except (JWTError, ValueError):
        raise cred_exc

    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise cred_exc
    return user
