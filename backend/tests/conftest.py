"""
Pytest fixtures for Folio backend tests.

Provides test database setup, user/portfolio fixtures, auth headers, and a
failing identity provider for the hard-delete rollback path.
"""

from datetime import date
from decimal import Decimal

import pytest

from folio import create_app
from folio.extensions import db
from folio.models import User, Exchange, Stock, Trade, Dividend
from folio.services import grant_service, identity_service
from folio.services.identity_service import IdentityProviderError, LocalIdentityProvider


PASSWORD = "Password123"


class FailingIdentityProvider(LocalIdentityProvider):
    """Local provider whose account deletion always fails upstream."""

    def delete_account(self, account_id: str) -> None:
        raise IdentityProviderError("identity provider unavailable")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'SELF_SIGNUP_ENABLED': False,
        'EXPOSE_ERROR_DETAILS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def failing_provider(app):
    """Swap in an identity provider whose delete_account raises."""
    original = app.extensions[identity_service.EXTENSION_KEY]
    app.extensions[identity_service.EXTENSION_KEY] = FailingIdentityProvider(bcrypt_rounds=4)
    yield app.extensions[identity_service.EXTENSION_KEY]
    app.extensions[identity_service.EXTENSION_KEY] = original


# =============================================================================
# USERS
# =============================================================================

@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: identity account + profile row, committed."""
    def _make(email, is_admin=False, is_active=True, full_name=None):
        provider = identity_service.get_provider()
        account_id = provider.create_account(email, PASSWORD)
        user = User(
            id=account_id,
            email=email,
            full_name=full_name,
            is_admin=is_admin,
            is_active=is_active,
            must_change_password=False,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("admin@folio.test", is_admin=True, full_name="Admin")


@pytest.fixture(scope='function')
def alice(make_user):
    return make_user("alice@folio.test", full_name="Alice")


@pytest.fixture(scope='function')
def bob(make_user):
    return make_user("bob@folio.test", full_name="Bob")


@pytest.fixture(scope='function')
def carol(make_user):
    return make_user("carol@folio.test", full_name="Carol")


@pytest.fixture(scope='function')
def headers_for(db_session):
    """Factory: sign the user in through the provider and build auth headers."""
    def _headers(user):
        _, token = identity_service.get_provider().sign_in(user.email, PASSWORD)
        db_session.commit()
        return auth_headers(token)
    return _headers


@pytest.fixture(scope='function')
def admin_headers(admin, headers_for):
    return headers_for(admin)


@pytest.fixture(scope='function')
def alice_headers(alice, headers_for):
    return headers_for(alice)


@pytest.fixture(scope='function')
def bob_headers(bob, headers_for):
    return headers_for(bob)


@pytest.fixture(scope='function')
def grant(db_session):
    """Shortcut for grant_service.upsert_grant."""
    def _grant(resource, owner, grantee, mode):
        owner_id = owner.id if owner is not None else None
        return grant_service.upsert_grant(resource, owner_id, grantee.id, mode)
    return _grant


# =============================================================================
# PORTFOLIO DATA
# =============================================================================

@pytest.fixture(scope='function')
def exchange(db_session):
    exchange = Exchange(code="KASE", name="Kazakhstan Stock Exchange", currency="KZT")
    db_session.add(exchange)
    db_session.commit()
    return exchange


@pytest.fixture(scope='function')
def stock(db_session, exchange):
    stock = Stock(ticker="KZTO", name="KazTransOil", exchange_id=exchange.id)
    db_session.add(stock)
    db_session.commit()
    return stock


@pytest.fixture(scope='function')
def add_trade(db_session):
    """Factory: insert a trade row directly."""
    def _add(owner, stock, trade_type, quantity, price, on=date(2024, 1, 15)):
        price = Decimal(str(price))
        trade = Trade(
            user_id=owner.id,
            stock_id=stock.id,
            trade_type=trade_type,
            trade_date=on,
            quantity=quantity,
            price_per_share=price,
            total_amount=price * quantity,
        )
        db_session.add(trade)
        db_session.commit()
        return trade
    return _add


@pytest.fixture(scope='function')
def add_dividend(db_session):
    def _add(owner, stock, quantity, per_share, on=date(2024, 6, 1)):
        per_share = Decimal(str(per_share))
        dividend = Dividend(
            user_id=owner.id,
            stock_id=stock.id,
            payment_date=on,
            quantity=quantity,
            amount_per_share=per_share,
            total_amount=per_share * quantity,
        )
        db_session.add(dividend)
        db_session.commit()
        return dividend
    return _add


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
