import pytest
from decimal import Decimal

from config import TestConfig
from pos import create_app
from pos import database
from pos.database import get_session
from pos.models import Product, Coupon, CouponKind, GroupDiscountScheme


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    app = create_app(TestConfig)
    return app


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema and database session for each test."""
    database.drop_all()
    database.create_all()
    session = get_session()
    yield session
    session.rollback()
    session.remove()


@pytest.fixture(scope='function')
def client(app, session):
    """Create test client."""
    return app.test_client()


def make_product(session, **overrides):
    """Insert a product and return it with attributes loaded."""
    data = dict(
        name='Espresso',
        barcode='1001',
        price=Decimal('150.00'),
        mrp=Decimal('200.00'),
        discount_rate=Decimal('25.00'),
        cost=Decimal('50.00'),
        tax_rate=Decimal('18'),
        stock=100,
        active=True,
    )
    data.update(overrides)
    product = Product(**data)
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture(scope='function')
def espresso(session):
    return make_product(session)


@pytest.fixture(scope='function')
def croissant(session):
    return make_product(
        session,
        name='Croissant',
        barcode='2001',
        price=Decimal('80.00'),
        mrp=Decimal('100.00'),
        discount_rate=Decimal('20.00'),
        cost=Decimal('30.00'),
        tax_rate=Decimal('5'),
        stock=50,
    )


@pytest.fixture(scope='function')
def coupon_save10(session):
    coupon = Coupon(code='SAVE10', kind=CouponKind.PERCENT, value=Decimal('10'), active=True)
    session.add(coupon)
    session.commit()
    session.refresh(coupon)
    return coupon


@pytest.fixture(scope='function')
def buy2get1(session):
    scheme = GroupDiscountScheme(name='Buy 2 Get 1 Free', buy_qty=2, get_qty=1, active=True)
    session.add(scheme)
    session.commit()
    session.refresh(scheme)
    return scheme
