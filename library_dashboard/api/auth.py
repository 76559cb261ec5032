import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from library_dashboard.core.database import get_db
from library_dashboard.core.errors import AuthError
from library_dashboard.core.security import create_access_token, get_current_user, verify_password
from library_dashboard.models import models
from library_dashboard.schemas import schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=schemas.Token)
def login(credentials: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = db.query(models.User).filter(models.User.email == credentials.email).first()
    if not user or not verify_password(user.password_hash, credentials.password):
        logger.info(f"Failed login for email={credentials.email}")
        raise AuthError("Invalid email or password")
    return schemas.Token(access_token=create_access_token(user.id))

@router.get("/me", response_model=schemas.UserOut)
def me(current_user: models.User = Depends(get_current_user)):
    return current_user
