import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Auth & users
    Token, RegisterRequest, RegisterResponse, ValidateAccountRequest, UserResponse,
    # Config & courts
    ConfigResponse, CourtResponse, SetCourtActiveRequest, CourtAvailabilityResponse,
    # Blocks
    CreateBlockRequest, BlockResponse,
    # Reservations & payments
    CreateReservationRequest, ManualReservationRequestDTO, CancelReservationRequest,
    ReservationResponse, PaymentResponse, RefundResponse,
    # Audit & notifications
    AuditEntryResponse, NotificationResponse,
)
from api.dependencies import get_club_api, get_current_user, get_current_admin
from application.facade import ClubAPI
from domain.auth import Principal
from domain.enums import ReservationStatus, PaymentStatus
from domain.errors import (
    DomainError, ConflictError, AuthorizationError, NotFoundError,
)
from domain.value_objects import (
    ConfigPatch, Registration, AccountValidation, ReservationRequest, ManualReservationRequest, BlockRequest,
)
from infrastructure import settings
from infrastructure.security import create_access_token

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(
    title="Tennis Club Reservation API",
    description="Court bookings, payments and staff operations for a tennis club",
    version="1.0.0"
)

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {"values": [item.value for item in ReservationStatus]}

@app.get("/api/enums/payment-status", tags=["Enum Reference"])
async def get_payment_statuses():
    """Get all PaymentStatus enum values"""
    return {"values": [item.value for item in PaymentStatus]}

# ============================================================================
# AUTH & USER ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    api: ClubAPI = Depends(get_club_api)
):
    """Log in with email (as username) and password"""
    try:
        user_id = await api.login(form_data.username, form_data.password)
    except (NotFoundError, AuthorizationError):
        raise HTTPException(
            status_code=401,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"access_token": create_access_token(user_id), "token_type": "bearer"}

@app.post("/api/users/register", response_model=RegisterResponse, status_code=201, tags=["Auth"])
async def register_user(request: RegisterRequest, api: ClubAPI = Depends(get_club_api)):
    """Create an account; its socio status comes from the membership registry"""
    try:
        user_id = await api.register(Registration(**request.model_dump()))
    except DomainError as e:
        raise _to_http_exception(e)
    return RegisterResponse(user_id=user_id, user_type=api.get_user(user_id).user_type)

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(
    current_user: Principal = Depends(get_current_user),
    api: ClubAPI = Depends(get_club_api)
):
    return _user_to_response(api.get_user(current_user.user_id))

@app.post("/users/me/validate", response_model=UserResponse, tags=["Auth"])
async def validate_account(
    request: ValidateAccountRequest,
    current_user: Principal = Depends(get_current_user),
    api: ClubAPI = Depends(get_club_api)
):
    """Mark the caller's email and/or phone as validated"""
    try:
        user = await api.validate_account(current_user.user_id, AccountValidation(**request.model_dump()))
    except DomainError as e:
        raise _to_http_exception(e)
    return _user_to_response(user)

@app.post("/users/me/logout", status_code=204, tags=["Auth"])
async def logout(
    current_user: Principal = Depends(get_current_user),
    api: ClubAPI = Depends(get_club_api)
):
    await api.logout(current_user.user_id)

# ============================================================================
# CONFIG & COURT ENDPOINTS
# ============================================================================

@app.get("/api/config", response_model=ConfigResponse, tags=["Config"])
async def get_config(api: ClubAPI = Depends(get_club_api)):
    return ConfigResponse(**api.get_config().model_dump())

@app.patch("/api/config", response_model=ConfigResponse, tags=["Config"])
async def update_config(
    patch: ConfigPatch,
    admin: Principal = Depends(get_current_admin),
    api: ClubAPI = Depends(get_club_api)
):
    """Change prices or validation requirements; only the sent fields change"""
    config = await api.set_config(admin.user_id, patch)
    return ConfigResponse(**config.model_dump())

@app.get("/api/courts", response_model=List[CourtResponse], tags=["Courts"])
async def list_courts(api: ClubAPI = Depends(get_club_api)):
    return [CourtResponse(**c.model_dump()) for c in api.list_courts()]

@app.put("/api/courts/{court_id}/active", response_model=List[CourtResponse], tags=["Courts"])
async def set_court_active(
    court_id: str,
    request: SetCourtActiveRequest,
    admin: Principal = Depends(get_current_admin),
    api: ClubAPI = Depends(get_club_api)
):
    """Switch a court on or off; unknown courts are ignored"""
    await api.set_court_active(admin.user_id, court_id, request.is_active)
    return [CourtResponse(**c.model_dump()) for c in api.list_courts()]

@app.get("/api/availability", response_model=List[CourtAvailabilityResponse], tags=["Courts"])
async def get_availability(date_iso: str, time: str, api: ClubAPI = Depends(get_club_api)):
    """Status of every court at one slot"""
    try:
        availability = api.slot_availability(date_iso, time)
    except DomainError as e:
        raise _to_http_exception(e)
    return [CourtAvailabilityResponse(**a.model_dump()) for a in availability]

# ============================================================================
# BLOCK ENDPOINTS
# ============================================================================

@app.get("/api/blocks", response_model=List[BlockResponse], tags=["Blocks"])
async def list_blocks(date_iso: Optional[str] = None, api: ClubAPI = Depends(get_club_api)):
    try:
        blocks = api.list_blocks(date_iso)
    except DomainError as e:
        raise _to_http_exception(e)
    return [BlockResponse(**b.model_dump()) for b in blocks]

@app.post("/api/blocks", response_model=BlockResponse, status_code=201, tags=["Blocks"])
async def add_block(
    request: CreateBlockRequest,
    admin: Principal = Depends(get_current_admin),
    api: ClubAPI = Depends(get_club_api)
):
    try:
        block_id = await api.add_block(admin.user_id, BlockRequest(**request.model_dump()))
    except DomainError as e:
        raise _to_http_exception(e)
    return BlockResponse(**api.state.blocks[block_id].model_dump())

@app.delete("/api/blocks/{block_id}", status_code=204, tags=["Blocks"])
async def remove_block(
    block_id: str,
    admin: Principal = Depends(get_current_admin),
    api: ClubAPI = Depends(get_club_api)
):
    """Remove a block; unknown ids are ignored"""
    await api.remove_block(admin.user_id, block_id)

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    current_user: Principal = Depends(get_current_user),
    api: ClubAPI = Depends(get_club_api)
):
    """Book a slot for the caller"""
    try:
        reservation_id = await api.create_reservation(
            current_user.user_id, ReservationRequest(**request.model_dump())
        )
    except DomainError as e:
        raise _to_http_exception(e)
    return _reservation_to_response(api, reservation_id)

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def list_reservations(
    date_iso: Optional[str] = None,
    current_user: Principal = Depends(get_current_user),
    api: ClubAPI = Depends(get_club_api)
):
    """Admins see the whole agenda, users only their own bookings"""
    user_id = None if current_user.is_admin else current_user.user_id
    try:
        reservations = api.list_reservations(user_id, date_iso)
    except DomainError as e:
        raise _to_http_exception(e)
    return [_reservation_to_response(api, r.id) for r in reservations]

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: str,
    current_user: Principal = Depends(get_current_user),
    api: ClubAPI = Depends(get_club_api)
):
    _get_visible_reservation(api, current_user, reservation_id)
    return _reservation_to_response(api, reservation_id)

@app.post("/api/reservations/{reservation_id}/pay", response_model=ReservationResponse, tags=["Payments"])
async def pay_with_gateway(
    reservation_id: str,
    current_user: Principal = Depends(get_current_user),
    api: ClubAPI = Depends(get_club_api)
):
    """Pay online; confirms the reservation once the gateway approves"""
    _get_visible_reservation(api, current_user, reservation_id)
    try:
        await api.pay_with_gateway(current_user.user_id, reservation_id)
    except DomainError as e:
        raise _to_http_exception(e)
    return _reservation_to_response(api, reservation_id)

@app.post("/api/reservations/{reservation_id}/cash", response_model=ReservationResponse, tags=["Payments"])
async def register_cash_payment(
    reservation_id: str,
    admin: Principal = Depends(get_current_admin),
    api: ClubAPI = Depends(get_club_api)
):
    """Record a cash payment taken at the front desk"""
    try:
        await api.register_cash_payment(admin.user_id, reservation_id)
    except DomainError as e:
        raise _to_http_exception(e)
    return _reservation_to_response(api, reservation_id)

@app.post("/api/reservations/{reservation_id}/cancel", response_model=ReservationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: str,
    request: CancelReservationRequest,
    current_user: Principal = Depends(get_current_user),
    api: ClubAPI = Depends(get_club_api)
):
    _get_visible_reservation(api, current_user, reservation_id)
    try:
        await api.cancel_reservation(current_user.user_id, reservation_id, request.reason)
    except DomainError as e:
        raise _to_http_exception(e)
    return _reservation_to_response(api, reservation_id)

@app.post("/api/reservations/{reservation_id}/no-show", response_model=RefundResponse, tags=["Payments"])
async def mark_no_show(
    reservation_id: str,
    admin: Principal = Depends(get_current_admin),
    api: ClubAPI = Depends(get_club_api)
):
    """Mark a no-show and refund half of the payment"""
    try:
        refund = await api.mark_no_show_and_refund_50(admin.user_id, reservation_id)
    except DomainError as e:
        raise _to_http_exception(e)
    return RefundResponse(reservation_id=reservation_id, refund_amount=refund)

@app.post("/api/admin/reservations", response_model=ReservationResponse, status_code=201, tags=["Admin"])
async def admin_create_manual_reservation(
    request: ManualReservationRequestDTO,
    admin: Principal = Depends(get_current_admin),
    api: ClubAPI = Depends(get_club_api)
):
    """Book a slot on behalf of a user, optionally paid in cash"""
    try:
        reservation_id = await api.admin_create_manual_reservation(
            admin.user_id, ManualReservationRequest(**request.model_dump())
        )
    except DomainError as e:
        raise _to_http_exception(e)
    return _reservation_to_response(api, reservation_id)

# ============================================================================
# AUDIT & NOTIFICATION ENDPOINTS
# ============================================================================

@app.get("/api/audit", response_model=List[AuditEntryResponse], tags=["Admin"])
async def get_audit(
    limit: Optional[int] = None,
    admin: Principal = Depends(get_current_admin),
    api: ClubAPI = Depends(get_club_api)
):
    """Audit trail, newest first"""
    return [AuditEntryResponse(**e.model_dump()) for e in api.audit_entries(limit)]

@app.get("/api/notifications", response_model=List[NotificationResponse], tags=["Admin"])
async def get_notifications(
    limit: Optional[int] = None,
    admin: Principal = Depends(get_current_admin),
    api: ClubAPI = Depends(get_club_api)
):
    return [NotificationResponse(**n.model_dump(mode="json")) for n in api.notifications(limit)]

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _to_http_exception(error: DomainError) -> HTTPException:
    """Map a domain error to its HTTP status"""
    if isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, AuthorizationError):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"message": error.message, "code": error.code})

def _get_visible_reservation(api: ClubAPI, current_user: Principal, reservation_id: str):
    """Users may only act on their own reservations; admins on any"""
    reservation = api.get_reservation(reservation_id)
    if not reservation or (not current_user.is_admin and reservation.user_id != current_user.user_id):
        raise HTTPException(status_code=404, detail="Reservation not found")
    return reservation

def _user_to_response(user) -> UserResponse:
    """Convert User entity to UserResponse, leaving the password hash out"""
    return UserResponse(**user.model_dump(exclude={"password_hash"}))

def _reservation_to_response(api: ClubAPI, reservation_id: str) -> ReservationResponse:
    """Convert Reservation entity and its payment to ReservationResponse"""
    reservation = api.get_reservation(reservation_id)
    payment = api.get_payment(reservation_id)
    return ReservationResponse(
        **reservation.model_dump(),
        payment=PaymentResponse(
            **payment.model_dump(),
            refunded_amount=payment.refunded_amount,
        ) if payment else None,
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
