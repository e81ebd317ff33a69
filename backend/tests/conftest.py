"""
Pytest fixtures for royalty engine backend tests.

Provides the test database, tenant/camp/registration factories, API callers
with bearer tokens, and the test client.
"""

from datetime import date, datetime

import pytest

from royalty_engine import create_app
from royalty_engine.extensions import db
from royalty_engine.models import (
    Camp,
    Registration,
    RegistrationAddon,
    ShopOrder,
    Tenant,
    User,
    UserRoleAssignment,
)
from royalty_engine.models.auth import ROLE_HQ_ADMIN, ROLE_LICENSEE_OWNER
from royalty_engine.services import session_service


CAMP_START = date(2026, 6, 15)
CAMP_END = date(2026, 6, 19)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'APP_ENV': 'testing',
        'CRON_SECRET': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# TENANTS AND CAMPS
# =============================================================================

@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Licensee A (default royalty rate)."""
    tenant = Tenant(name="Acme Soccer Camps", slug="acme", contact_email="billing@acme.test")
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Licensee B (second tenant)."""
    tenant = Tenant(name="Beta Hoops", slug="beta", contact_email="billing@beta.test")
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def make_camp(db_session):
    """Factory: make_camp(tenant, status="completed", start=..., end=..., name=...)."""
    def _make(tenant, status="completed", start=CAMP_START, end=CAMP_END, name=None):
        camp = Camp(
            tenant_id=tenant.id,
            name=name or f"{tenant.name} Session {start.isoformat()}",
            slug=f"{tenant.slug}-{start.isoformat()}",
            status=status,
            start_date=start,
            end_date=end,
        )
        db_session.add(camp)
        db_session.commit()
        return camp
    return _make


@pytest.fixture(scope='function')
def add_registrations(db_session):
    """
    Factory: add_registrations(camp, count, total_price_cents, addons_total_cents=0,
    status="confirmed", created_at=None, updated_at=None) -> list[Registration].
    """
    def _add(camp, count, total_price_cents, addons_total_cents=0, status="confirmed",
             created_at=None, updated_at=None):
        stamp = created_at or datetime(2026, 5, 1, 12, 0)
        registrations = []
        for i in range(count):
            registration = Registration(
                tenant_id=camp.tenant_id,
                camp_id=camp.id,
                camper_name=f"Camper {camp.id}-{i + 1}",
                status=status,
                total_price_cents=total_price_cents,
                addons_total_cents=addons_total_cents,
                created_at=stamp,
                updated_at=updated_at or stamp,
            )
            db_session.add(registration)
            registrations.append(registration)
        db_session.commit()
        return registrations
    return _add


@pytest.fixture(scope='function')
def add_addon(db_session):
    """Factory: add_addon(registration, name, price_cents, quantity=1, variant_name=None)."""
    def _add(registration, name, price_cents, quantity=1, variant_name=None):
        addon = RegistrationAddon(
            registration_id=registration.id,
            name=name,
            variant_name=variant_name,
            quantity=quantity,
            price_cents=price_cents,
        )
        db_session.add(addon)
        db_session.commit()
        return addon
    return _add


@pytest.fixture(scope='function')
def add_shop_order(db_session):
    """Factory: add_shop_order(tenant, total_cents, created_at, status="delivered")."""
    def _add(tenant, total_cents, created_at, status="delivered"):
        order = ShopOrder(
            tenant_id=tenant.id,
            status=status,
            total_cents=total_cents,
            created_at=created_at,
        )
        db_session.add(order)
        db_session.commit()
        return order
    return _add


# =============================================================================
# API CALLERS
# =============================================================================

@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user(email, role=None, tenant=None) -> User."""
    def _make(email, role=None, tenant=None):
        user = User(email=email, first_name=email.split("@")[0].title(), is_active=True)
        db_session.add(user)
        db_session.commit()
        if role:
            db_session.add(UserRoleAssignment(
                user_id=user.id,
                tenant_id=tenant.id if tenant else None,
                role=role,
                is_active=True,
            ))
            db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def hq_admin(make_user):
    return make_user("admin@hq.test", ROLE_HQ_ADMIN)


@pytest.fixture(scope='function')
def owner_a(make_user, tenant_a):
    return make_user("owner@acme.test", ROLE_LICENSEE_OWNER, tenant_a)


@pytest.fixture(scope='function')
def owner_b(make_user, tenant_b):
    return make_user("owner@beta.test", ROLE_LICENSEE_OWNER, tenant_b)


def get_auth_token(user) -> str:
    """Helper to issue a bearer token for a user."""
    _, token = session_service.create_session(user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(hq_admin):
    return auth_headers(get_auth_token(hq_admin))


@pytest.fixture(scope='function')
def owner_a_headers(owner_a):
    return auth_headers(get_auth_token(owner_a))


@pytest.fixture(scope='function')
def owner_b_headers(owner_b):
    return auth_headers(get_auth_token(owner_b))


@pytest.fixture(scope='function')
def headers_for(db_session):
    """Factory: headers_for(user) -> Authorization headers with a fresh token."""
    def _headers(user):
        return auth_headers(get_auth_token(user))
    return _headers
