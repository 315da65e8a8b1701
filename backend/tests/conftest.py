import os
# Override settings before any app imports to avoid PostgreSQL/Redis/S3 requirements
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["DISABLE_CELERY"] = "true"
os.environ["SERVICE_ROLE_KEY"] = "test-service-role-key"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["AWS_ACCESS_KEY_ID"] = ""
os.environ["AWS_SECRET_ACCESS_KEY"] = ""
os.environ["SENTRY_DSN"] = ""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from talentpulse.platform.database import Base, get_db
from talentpulse.main import app
from talentpulse.platform.middleware import _rate_limit_store
from talentpulse.platform.security import create_access_token
from talentpulse.models import (
    AccessLevel,
    Answer,
    Assessment,
    Assignment,
    Benchmark,
    Client,
    Dimension,
    FeedbackLibrary,
    Field,
    FieldType,
    Group,
    GroupMember,
    Industry,
    Profile,
    ReportTemplate,
)
from talentpulse.shared.utils import new_uuid, utcnow

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SERVICE_ROLE_KEY = "test-service-role-key"


# Enable foreign key support for SQLite
@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    Base.metadata.create_all(bind=engine)
    # Clear in-memory rate limit state between tests to prevent 429 bleed-through
    _rate_limit_store.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    _rate_limit_store.clear()
    Base.metadata.drop_all(bind=engine)


def auth_headers_for(profile) -> dict:
    return {"Authorization": f"Bearer {create_access_token(profile.id)}"}


def service_headers() -> dict:
    return {"Authorization": f"Bearer {SERVICE_ROLE_KEY}"}


# ---------------------------------------------------------------------------
# Factory helpers: build report fixtures directly in the test DB
# ---------------------------------------------------------------------------

SLIDER = FieldType.SLIDER
ANCHORS = [{"label": str(v), "value": v} for v in range(1, 6)]


class ReportFactory:
    """Creates clients, profiles, assessments and answered assignments."""

    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def industry(self, name=None):
        return self._save(Industry(name=name or f"Industry {new_uuid()[:6]}"))

    def client(self, name="Acme Corp", industry=None):
        return self._save(Client(name=name, industry_id=industry.id if industry else None))

    def profile(self, name="Pat Lee", client=None, industry=None, access_level=AccessLevel.MEMBER, email=None):
        return self._save(
            Profile(
                name=name,
                email=email or f"{new_uuid()[:8]}@example.com",
                client_id=client.id if client else None,
                industry_id=industry.id if industry else None,
                access_level=access_level,
            )
        )

    def assessment(self, title="Leadership Assessment", is_360=False, client=None):
        return self._save(Assessment(title=title, is_360=is_360, client_id=client.id if client else None))

    def dimension(self, assessment, name, code=None, parent=None, definition=None):
        return self._save(
            Dimension(
                assessment_id=assessment.id,
                name=name,
                code=code or name[:3].upper(),
                parent_id=parent.id if parent else None,
                definition=definition,
            )
        )

    def field(self, assessment, dimension=None, type=SLIDER, anchors=None, order=0):
        return self._save(
            Field(
                assessment_id=assessment.id,
                dimension_id=dimension.id if dimension else None,
                type=type,
                content="How often?",
                order=order,
                anchors=anchors if anchors is not None else ANCHORS,
            )
        )

    def assignment(self, assessment, user, target=None, completed=True):
        now = utcnow()
        return self._save(
            Assignment(
                assessment_id=assessment.id,
                user_id=user.id,
                target_id=target.id if target else None,
                completed=completed,
                started_at=now - timedelta(minutes=30),
                completed_at=now - timedelta(minutes=1) if completed else None,
            )
        )

    def answer(self, assignment, field, value):
        return self._save(Answer(assignment_id=assignment.id, field_id=field.id, value=str(value)))

    def answered(self, assessment, user, answers, target=None, completed=True):
        """Assignment with ``answers`` given as ``[(field, value), ...]``."""
        assignment = self.assignment(assessment, user, target=target, completed=completed)
        for field, value in answers:
            self.answer(assignment, field, value)
        return assignment

    def group(self, name="Team Alpha", client=None, target=None, members=()):
        group = self._save(
            Group(name=name, client_id=client.id if client else None, target_id=target.id if target else None)
        )
        for profile, role in members:
            self._save(GroupMember(group_id=group.id, profile_id=profile.id, role=role))
        return group

    def benchmark(self, dimension, industry, value):
        return self._save(Benchmark(dimension_id=dimension.id, industry_id=industry.id, value=value))

    def feedback(self, assessment, text, type="specific", dimension=None, min_score=None, max_score=None):
        return self._save(
            FeedbackLibrary(
                assessment_id=assessment.id,
                dimension_id=dimension.id if dimension else None,
                type=type,
                feedback=text,
                min_score=min_score,
                max_score=max_score,
            )
        )

    def template(self, assessment, components=None, labels=None, styling=None, is_default=True, name="Default"):
        return self._save(
            ReportTemplate(
                assessment_id=assessment.id,
                name=name,
                is_default=is_default,
                components=components or {},
                labels=labels or {},
                styling=styling or {},
            )
        )


@pytest.fixture
def factory(db):
    return ReportFactory(db)


@pytest.fixture
def leader_setup(factory):
    """Completed leader/blocker assignment with two scored dimensions, a group and a benchmark."""
    industry = factory.industry("Technology")
    acme = factory.client("Acme Corp", industry=industry)
    user = factory.profile("Pat Lee", client=acme)
    peer = factory.profile("Sam Roe", client=acme)
    assessment = factory.assessment("Leadership Assessment", client=acme)
    vision = factory.dimension(assessment, "Vision", code="VIS", definition="Sets direction")
    delivery = factory.dimension(assessment, "Delivery", code="DEL")
    f_vision = factory.field(assessment, vision)
    f_delivery = factory.field(assessment, delivery)
    factory.benchmark(vision, industry, 4.0)
    group = factory.group("Team Alpha", client=acme, members=[(user, "member"), (peer, "member")])
    assignment = factory.answered(assessment, user, [(f_vision, 3), (f_delivery, 5)])
    peer_assignment = factory.answered(assessment, peer, [(f_vision, 5), (f_delivery, 3)])
    return {
        "industry": industry,
        "client": acme,
        "user": user,
        "peer": peer,
        "assessment": assessment,
        "vision": vision,
        "delivery": delivery,
        "fields": {"vision": f_vision, "delivery": f_delivery},
        "group": group,
        "assignment": assignment,
        "peer_assignment": peer_assignment,
    }


@pytest.fixture
def setup_360(factory):
    """360 assessment for one target rated by self, a peer and a supervisor (one rater pending)."""
    industry = factory.industry("Finance")
    acme = factory.client("Acme Corp", industry=industry)
    target = factory.profile("Jordan Diaz", client=acme)
    peer = factory.profile("Sam Roe", client=acme)
    boss = factory.profile("Alex Kim", client=acme)
    pending = factory.profile("Chris Poe", client=acme)
    assessment = factory.assessment("360 Leadership", is_360=True, client=acme)
    comms = factory.dimension(assessment, "Communication", code="COM")
    listening = factory.dimension(assessment, "Listening", code="LIS", parent=comms)
    f_listening = factory.field(assessment, listening)
    f_comms_text = factory.field(assessment, listening, type=FieldType.TEXT_INPUT, anchors=[])
    factory.benchmark(comms, industry, 3.5)
    group = factory.group(
        "Jordan's raters",
        client=acme,
        target=target,
        members=[(target, "self"), (peer, "peer"), (boss, "manager"), (pending, "direct report")],
    )
    self_a = factory.answered(assessment, target, [(f_listening, 4)], target=target)
    peer_a = factory.answered(assessment, peer, [(f_listening, 2), (f_comms_text, "<p>Listens well</p>")], target=target)
    boss_a = factory.answered(assessment, boss, [(f_listening, 3)], target=target)
    pending_a = factory.assignment(assessment, pending, target=target, completed=False)
    return {
        "client": acme,
        "target": target,
        "peer": peer,
        "boss": boss,
        "assessment": assessment,
        "comms": comms,
        "listening": listening,
        "group": group,
        "self_assignment": self_a,
        "peer_assignment": peer_a,
        "boss_assignment": boss_a,
        "pending_assignment": pending_a,
    }
