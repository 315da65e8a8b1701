"""
Shared dependencies: resolve the caller of a report endpoint.

A caller is either a profile (bearer token or session cookie) or the internal
service role (bearer token, or ``?service_role_token=`` on the report view).
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .components.reports.repository import can_view_assignment
from .models.assignment import Assignment
from .models.profile import Profile
from .platform.config import settings
from .platform.database import get_db
from .platform.security import decode_access_token, is_service_role_token

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class ReportActor:
    profile: Optional[Profile] = None
    service_role: bool = False
    # Credential to replay into the headless browser
    token: Optional[str] = None
    token_from_bearer: bool = False

    def can_view(self, assignment: Assignment) -> bool:
        return self.service_role or (self.profile is not None and can_view_assignment(self.profile, assignment))


def _profile_from_token(db: Session, token: Optional[str]) -> Optional[Profile]:
    if not token:
        return None
    profile_id = decode_access_token(token)
    if not profile_id:
        return None
    return db.query(Profile).filter(Profile.id == profile_id).first()


def _resolve_actor(request: Request, credentials: Optional[HTTPAuthorizationCredentials], db: Session, allow_query_token: bool) -> ReportActor:
    bearer = credentials.credentials if credentials else None
    if is_service_role_token(bearer):
        return ReportActor(service_role=True, token=bearer, token_from_bearer=True)
    if allow_query_token and is_service_role_token(request.query_params.get("service_role_token")):
        return ReportActor(service_role=True, token=request.query_params.get("service_role_token"))

    profile = _profile_from_token(db, bearer)
    if profile is not None:
        return ReportActor(profile=profile, token=bearer, token_from_bearer=True)

    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    profile = _profile_from_token(db, cookie)
    if profile is not None:
        return ReportActor(profile=profile, token=cookie)

    raise HTTPException(status_code=401, detail="Not authenticated")


def get_report_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> ReportActor:
    return _resolve_actor(request, credentials, db, allow_query_token=False)


def get_view_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> ReportActor:
    return _resolve_actor(request, credentials, db, allow_query_token=True)


def require_view_access(actor: ReportActor, assignment: Assignment) -> None:
    if not actor.can_view(assignment):
        raise HTTPException(status_code=403, detail="Not authorized to access this report")
