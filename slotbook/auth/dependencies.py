from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWTError
from sqlalchemy.orm import Session

from slotbook.auth import jwt_handler
from slotbook.database import get_db
from slotbook.models.user import User

security = HTTPBearer()


def get_current_owner(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        email = jwt_handler.decode_owner_token(token)
    except PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    owner = db.query(User).filter(User.email == email).first()
    if owner is None:
        raise HTTPException(status_code=401, detail="User not found")
    return owner
