import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import ROLE_CUSTOMER, ROLE_MODEL, get_current_customer
from ..config import (
    LOGIN_RATE_LIMIT,
    LOGIN_RATE_WINDOW_SECONDS,
    RESET_RESEND_SECONDS,
    RESET_TOKEN_MINUTES,
    RESET_VERIFIED_MINUTES,
)
from ..database import get_db
from ..domain.wallet.repository import WalletRepository
from ..models import Customer, Model, Report
from ..rate_limiter import create_rate_limiter
from ..schemas import (
    ChangePasswordRequest,
    CustomerResponse,
    CustomerUpdate,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ReportCreate,
    ReportResponse,
    ResetPasswordRequest,
    TokenResponse,
    VerifyResetCodeRequest,
)
from ..security_utils import (
    create_access_token,
    generate_reset_code,
    hash_password,
    sanitize_text,
    verify_password,
)
from ..services import sms_service
from ..services.audit_service import STATUS_FAILED, STATUS_SUCCESS, create_audit_log
from ..services.qr_service import profile_share_url, render_qr_data_uri
from ..shared.responses import success_response
from ..shared.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# Rate limiters
rate_limit_login = create_rate_limiter(
    limit=LOGIN_RATE_LIMIT, window_seconds=LOGIN_RATE_WINDOW_SECONDS, key_prefix="login"
)
rate_limit_register = create_rate_limiter(
    limit=LOGIN_RATE_LIMIT, window_seconds=LOGIN_RATE_WINDOW_SECONDS, key_prefix="register"
)
rate_limit_password_reset = create_rate_limiter(
    limit=LOGIN_RATE_LIMIT, window_seconds=LOGIN_RATE_WINDOW_SECONDS, key_prefix="password_reset"
)

INVALID_CREDENTIALS = "Invalid phone number or password"


def customer_response(customer: Customer) -> CustomerResponse:
    return CustomerResponse(
        id=customer.id,
        firstName=customer.first_name,
        lastName=customer.last_name,
        whatsapp=customer.whatsapp,
        gender=customer.gender,
        dob=customer.dob,
        profile=customer.profile,
        bio=customer.bio,
        latitude=customer.latitude,
        longitude=customer.longitude,
        status=customer.status,
        createdAt=customer.created_at,
    )


@router.post("/register")
async def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_register),
):
    """Create a customer account together with its wallet"""
    if db.query(Customer).filter(Customer.whatsapp == data.whatsapp).first():
        raise HTTPException(status_code=409, detail="This phone number is already registered")

    customer = Customer(
        first_name=data.firstName,
        last_name=data.lastName,
        whatsapp=data.whatsapp,
        password=hash_password(data.password),
        gender=data.gender,
        dob=data.dob,
        status="active",
    )
    db.add(customer)
    db.flush()
    WalletRepository.create_wallet(db, customer_id=customer.id)
    db.commit()
    db.refresh(customer)
    logger.info(f"🆕 Customer registered: {customer.id}")

    create_audit_log(db, "CUSTOMER_REGISTER", "Customer registered", STATUS_SUCCESS, customer_id=customer.id)
    return success_response(
        "Registration successful",
        customer=customer_response(customer),
        accessToken=create_access_token(customer.id, ROLE_CUSTOMER),
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_login),
):
    customer = db.query(Customer).filter(Customer.whatsapp == data.whatsapp).first()
    if not customer or not verify_password(data.password, customer.password):
        logger.warning(f"⚠️ Failed customer login for {data.whatsapp}")
        create_audit_log(db, "CUSTOMER_LOGIN", INVALID_CREDENTIALS, STATUS_FAILED)
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)
    if customer.status != "active":
        raise HTTPException(status_code=403, detail="Your account is not active")

    create_audit_log(db, "CUSTOMER_LOGIN", "Customer logged in", STATUS_SUCCESS, customer_id=customer.id)
    return TokenResponse(
        accessToken=create_access_token(customer.id, ROLE_CUSTOMER), role=ROLE_CUSTOMER, userId=customer.id
    )


@router.post("/model/login", response_model=TokenResponse)
async def model_login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_login),
):
    model = db.query(Model).filter(Model.whatsapp == data.whatsapp).first()
    if not model or not verify_password(data.password, model.password):
        logger.warning(f"⚠️ Failed model login for {data.whatsapp}")
        create_audit_log(db, "MODEL_LOGIN", INVALID_CREDENTIALS, STATUS_FAILED)
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)
    if model.status != "active":
        raise HTTPException(status_code=403, detail="Your account is not active")

    create_audit_log(db, "MODEL_LOGIN", "Model logged in", STATUS_SUCCESS, model_id=model.id)
    return TokenResponse(accessToken=create_access_token(model.id, ROLE_MODEL), role=ROLE_MODEL, userId=model.id)


@router.get("/me", response_model=CustomerResponse)
async def get_me(current_customer: Customer = Depends(get_current_customer)):
    """Get current authenticated customer"""
    return customer_response(current_customer)


@router.patch("/me", response_model=CustomerResponse)
async def update_me(
    data: CustomerUpdate,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    """Update current customer profile"""
    if data.firstName is not None:
        current_customer.first_name = data.firstName
    if data.lastName is not None:
        current_customer.last_name = data.lastName or None
    if data.bio is not None:
        current_customer.bio = sanitize_text(data.bio)
    if data.latitude is not None:
        current_customer.latitude = data.latitude
    if data.longitude is not None:
        current_customer.longitude = data.longitude

    db.commit()
    db.refresh(current_customer)
    return customer_response(current_customer)


@router.get("/me/share-qr")
async def get_profile_share_qr(current_customer: Customer = Depends(get_current_customer)):
    """QR code of the customer's public profile link"""
    url = profile_share_url(current_customer.id)
    return {"url": url, "qrCode": render_qr_data_uri(url)}


@router.delete("/me")
async def delete_account(
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    """Close the customer's own account; the row is kept as inactive for the wallet ledger"""
    current_customer.status = "inactive"
    db.commit()
    logger.info(f"🗑️ Customer {current_customer.id} closed their account")
    create_audit_log(
        db, "DELETE_SELF_ACCOUNT", "Customer closed their account", STATUS_SUCCESS, customer_id=current_customer.id
    )
    return success_response("Your account has been deleted")


# ============================================================================
# PASSWORD
# ============================================================================


@router.post("/password/change")
async def change_password(
    data: ChangePasswordRequest,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    if not verify_password(data.oldPassword, current_customer.password):
        create_audit_log(
            db,
            "UPDATE_CUSTOMER_PASSWORD",
            "Old password does not match",
            STATUS_FAILED,
            customer_id=current_customer.id,
        )
        raise HTTPException(status_code=400, detail="Your old password is incorrect")

    current_customer.password = hash_password(data.newPassword)
    db.commit()
    logger.info(f"🔑 Customer {current_customer.id} changed their password")
    create_audit_log(
        db, "UPDATE_CUSTOMER_PASSWORD", "Password changed", STATUS_SUCCESS, customer_id=current_customer.id
    )
    return success_response("Password changed successfully")


def clear_reset_code(customer: Customer) -> None:
    customer.reset_token = None
    customer.reset_token_expiry = None
    customer.reset_token_verified = False


@router.post("/password/forgot")
async def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_password_reset),
):
    """
    Text a reset code to the customer's phone.

    Asking again within RESET_RESEND_SECONDS is refused; a new request
    replaces the previous code.
    """
    customer = db.query(Customer).filter(Customer.whatsapp == data.whatsapp).first()
    if not customer:
        create_audit_log(db, "FORGOT_PASSWORD", f"Reset requested for unknown phone {data.whatsapp}", STATUS_FAILED)
        raise HTTPException(status_code=404, detail="Phone number not found")

    now = utcnow()
    if customer.reset_requested_at and now - customer.reset_requested_at < timedelta(seconds=RESET_RESEND_SECONDS):
        raise HTTPException(
            status_code=429, detail=f"Please wait {RESET_RESEND_SECONDS} seconds before requesting a new code"
        )

    code = generate_reset_code()
    customer.reset_token = code
    customer.reset_token_expiry = now + timedelta(minutes=RESET_TOKEN_MINUTES)
    customer.reset_token_verified = False
    customer.reset_requested_at = now
    db.commit()

    try:
        await sms_service.send_otp(customer.whatsapp, code)
    except sms_service.SmsError as e:
        logger.error(f"❌ Failed to send reset code to {customer.whatsapp}: {e}")
        clear_reset_code(customer)
        customer.reset_requested_at = None
        db.commit()
        create_audit_log(db, "FORGOT_PASSWORD", str(e), STATUS_FAILED, customer_id=customer.id)
        raise HTTPException(status_code=503, detail="Could not send the code. Please try again later.")

    create_audit_log(db, "FORGOT_PASSWORD", "Reset code sent", STATUS_SUCCESS, customer_id=customer.id)
    return success_response("A reset code was sent to your phone")


@router.post("/password/verify")
async def verify_reset_code(
    data: VerifyResetCodeRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_password_reset),
):
    """Check the texted code; a valid code gets a short window to choose the new password"""
    now = utcnow()
    customer = (
        db.query(Customer)
        .filter(Customer.reset_token == data.code, Customer.reset_token_expiry > now)
        .first()
    )
    if not customer:
        raise HTTPException(status_code=400, detail="Invalid or expired code")

    customer.reset_token_verified = True
    customer.reset_token_expiry = now + timedelta(minutes=RESET_VERIFIED_MINUTES)
    db.commit()
    return success_response("Code verified", expiresAt=customer.reset_token_expiry)


@router.post("/password/reset")
async def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_password_reset),
):
    customer = (
        db.query(Customer)
        .filter(
            Customer.reset_token == data.code,
            Customer.reset_token_expiry > utcnow(),
            Customer.reset_token_verified.is_(True),
        )
        .first()
    )
    if not customer:
        create_audit_log(db, "RESET_PASSWORD", "Invalid or unverified reset code", STATUS_FAILED)
        raise HTTPException(status_code=400, detail="Invalid or expired code")

    customer.password = hash_password(data.newPassword)
    clear_reset_code(customer)
    db.commit()
    logger.info(f"🔑 Password reset for customer {customer.id}")
    create_audit_log(db, "RESET_PASSWORD", "Password reset", STATUS_SUCCESS, customer_id=customer.id)
    return success_response("Password reset successfully. Please log in with your new password.")


# ============================================================================
# REPORTS
# ============================================================================


@router.post("/reports")
async def create_report(
    data: ReportCreate,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    report = Report(
        customer_id=current_customer.id,
        type=data.type,
        title=data.title,
        description=sanitize_text(data.description),
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info(f"📝 Report {report.id} ({report.type}) from customer {current_customer.id}")
    create_audit_log(
        db, "CREATE_REPORT", f"Report {report.id} created", STATUS_SUCCESS, customer_id=current_customer.id
    )
    return success_response(
        "Thank you. Our team will review your report.",
        report=ReportResponse(
            id=report.id,
            type=report.type,
            title=report.title,
            description=report.description,
            status=report.status,
            createdAt=report.created_at,
        ),
    )
