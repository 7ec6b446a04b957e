from datetime import datetime

import pytest

from app import create_app
from config import TestingConfig
from models import db
from models.user import User, Role
from security.password import hash_password
from security.rbac import Actor, ADMIN, USER
from services import catalog

PASSWORD = "rental123"


@pytest.fixture()
def app():
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def ctx(app):
    """Push an app context for tests that call the services directly."""
    with app.app_context():
        yield app


@pytest.fixture()
def client(app):
    return app.test_client()


def make_user(email, admin=False, name=None) -> User:
    role_name = ADMIN if admin else USER
    role = Role.query.filter_by(name=role_name).first()
    user = User(email=email, password_hash=hash_password(PASSWORD), name=name or email.split("@")[0])
    user.roles.append(role)
    db.session.add(user)
    db.session.commit()
    return user


def vehicle_payload(**overrides) -> dict:
    data = {
        "name": "Corolla Hybrid",
        "type": "sedan",
        "brand": "Toyota",
        "model": "Corolla",
        "year": 2023,
        "price_per_day": 50,
        "seating_capacity": 5,
        "fuel_type": "hybrid",
        "transmission": "automatic",
        "mileage": "4.5L/100km",
        "features": ["AC", "Bluetooth"],
    }
    data.update(overrides)
    return data


def make_vehicle(**overrides):
    return catalog.create_vehicle(vehicle_payload(**overrides))


def actor(user) -> Actor:
    return Actor(id=user.id, role="admin" if ADMIN in user.role_names else "user")


def dt(text: str) -> datetime:
    return datetime.fromisoformat(text)


def login(client, email, password=PASSWORD) -> dict:
    """Log in through the API and return the headers a write request needs."""
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return {"X-CSRF-Token": client.get_cookie("csrf_token").value}
