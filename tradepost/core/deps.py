from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from tradepost.core.security import decode_access_token
from tradepost.db.session import get_db
from tradepost.models.user import User
from tradepost.services.trade_engine import TradeEngine, build_trade_engine

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    credentials_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    subject = decode_access_token(token)
    if subject is None or not subject.isdigit():
        raise credentials_error

    user = db.get(User, int(subject))
    if user is None:
        raise credentials_error
    return user


def get_trade_engine(db: Session = Depends(get_db)) -> TradeEngine:
    return build_trade_engine(db)
