import os
import sys
from decimal import Decimal
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault('APP_ENV', 'testing')
os.environ.setdefault('CELERY_TASK_ALWAYS_EAGER', '1')

from models import db, Product
from app.auth.identity import CurrentUser


@pytest.fixture(scope='session')
def app_instance():
    from app import create_app
    from app.config import TestingConfig
    app = create_app(TestingConfig)
    app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI='sqlite:///:memory:',
        SQLALCHEMY_TRACK_MODIFICATIONS=False
    )
    return app


@pytest.fixture(scope='function')
def app(app_instance):
    with app_instance.app_context():
        db.drop_all()
        db.create_all()
        yield app_instance
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    return app.test_client()


@pytest.fixture
def buyer():
    return CurrentUser(id="buyer-1", role="buyer", name="Bea Buyer")


@pytest.fixture
def seller_a():
    return CurrentUser(id="seller-a", role="seller", name="Alpha Goods")


@pytest.fixture
def seller_b():
    return CurrentUser(id="seller-b", role="seller", name="Beta Crafts")


@pytest.fixture
def make_product(app):
    def _make(seller, title="Widget", price="10.00", stock=10, images=None):
        product = Product(
            seller_id=seller.id,
            seller_name=seller.name,
            title=title,
            price=Decimal(price),
            stock=stock,
            images=images if images is not None else [f"https://img.example/{title.lower()}.jpg"],
        )
        db.session.add(product)
        db.session.commit()
        return product
    return _make


@pytest.fixture
def checkout_details():
    return {
        "full_name": "Bea Buyer",
        "email": "bea@example.com",
        "phone": "5551234567",
        "address": "12 Market Street",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
        "payment_method": "card",
    }
