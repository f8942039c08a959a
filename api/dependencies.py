"""API Dependencies - wiring and authentication"""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from application.facade import ClubAPI
from domain.auth import Principal
from domain.enums import NotificationChannel
from infrastructure import settings
from infrastructure.gateways import SimulatedSocioVerifier, SimulatedPaymentGateway
from infrastructure.repositories.snapshot_repositories import (
    InMemorySnapshotRepository, JsonFileSnapshotRepository,
)
from infrastructure.security import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


def build_club_api() -> ClubAPI:
    """ClubAPI wired from process settings"""
    if settings.SNAPSHOT_PATH:
        repository = JsonFileSnapshotRepository(settings.SNAPSHOT_PATH)
    else:
        repository = InMemorySnapshotRepository()
    return ClubAPI(
        repository=repository,
        socio_verifier=SimulatedSocioVerifier(),
        payment_gateway=SimulatedPaymentGateway(),
        channels=[NotificationChannel(ch) for ch in settings.NOTIFICATION_CHANNELS],
    )


club_api = build_club_api()


async def get_club_api() -> ClubAPI:
    await club_api.ensure_loaded()
    return club_api


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    api: ClubAPI = Depends(get_club_api),
) -> Principal:
    user_id = decode_access_token(token)
    user = api.get_user(user_id) if user_id else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Principal(user_id=user.id, email=user.email, role=user.role)


async def get_current_admin(current_user: Principal = Depends(get_current_user)) -> Principal:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return current_user
