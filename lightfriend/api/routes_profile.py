import logging

from fastapi import APIRouter, Request

from lightfriend.api.dependencies import AuthUserDep, CurrentUserDep, DbDep, require_self_or_admin
from lightfriend.api.rate_limit import RATE_LIMITS, limiter
from lightfriend.core.audit import log_audit_event
from lightfriend.models import schemas
from lightfriend.services import credits, twilio_service, users

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/profile", response_model=schemas.ProfileOut)
def get_profile(current_user_id: CurrentUserDep, db: DbDep):
    user = users.get_user_or_404(db, current_user_id)
    credits.expire_plan_if_needed(db, user)
    return users.profile(user)


@router.delete("/profile/delete/{user_id}", response_model=schemas.MessageOut)
def delete_profile(user_id: int, auth_user: AuthUserDep, db: DbDep):
    require_self_or_admin(user_id, auth_user)
    user = users.get_user_or_404(db, user_id)
    users.delete_user(db, user)
    log_audit_event("profile.delete", user_id=auth_user.user_id, target_user_id=user_id)
    return schemas.MessageOut(message="User deleted successfully")


@router.post("/profile/twilio-phone", response_model=schemas.MessageOut)
def update_twilio_phone(payload: schemas.TwilioPhoneIn, current_user_id: CurrentUserDep, db: DbDep):
    user = users.get_user_or_404(db, current_user_id)
    user.twilio_phone = payload.twilio_phone
    user.preferred_number = payload.twilio_phone
    db.commit()
    log_audit_event("profile.twilio_phone", user_id=current_user_id)
    return schemas.MessageOut(message="Twilio phone updated successfully")


@router.post("/profile/twilio-creds", response_model=schemas.MessageOut)
def update_twilio_creds(payload: schemas.TwilioCredsIn, current_user_id: CurrentUserDep, db: DbDep):
    user = users.get_user_or_404(db, current_user_id)
    user.twilio_sid = payload.account_sid
    user.twilio_token = payload.auth_token
    db.commit()
    log_audit_event("profile.twilio_creds", user_id=current_user_id)
    return schemas.MessageOut(message="Twilio credentials updated successfully")


@router.post("/country-info")
@limiter.limit(RATE_LIMITS["country_info"])
async def country_info(request: Request, payload: schemas.CountryInfoIn):
    return await twilio_service.fetch_country_info(payload.country_code)
