"""Pytest configuration and fixtures for the studio scheduler tests.

Every test gets a fresh in-memory database and a clock pinned to
2025-12-16 09:00, so "today" is the 16th.
"""

from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

import pytest

from app import create_app
from models import db
from models.customer import Customer, CustomerContact, Project
from models.editor import Editor
from models.room import Room
from utils.seed import create_user, seed_roles

FIXED_NOW = datetime(2025, 12, 16, 9, 0)


@pytest.fixture
def app():
    """Application bound to a throwaway in-memory SQLite database."""
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "CSRF_ENABLED": False,
        "CLOCK": lambda: FIXED_NOW,
        "LOG_LEVEL": "WARNING",
    })
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def masters(app) -> SimpleNamespace:
    """Two customers, a project each, three rooms and three editors.

    ``lounge`` and ``floater`` carry the ignore-conflict override.
    """
    dharma = Customer(name="Dharma Productions")
    dharma.contacts.append(CustomerContact(name="Karan", is_primary=True))
    yrf = Customer(name="Yash Raj Films")
    db.session.add_all([dharma, yrf])
    db.session.flush()

    movie = Project(name="Rocky Aur Rani", customer_id=dharma.id)
    vfx = Project(name="Tiger 3 VFX", customer_id=yrf.id)
    stage = Room(name="Sound Stage A", room_type="sound")
    suite = Room(name="Editing Suite 1", room_type="editing")
    lounge = Room(name="Client Lounge", room_type="client_office", ignore_conflict=True)
    rajesh = Editor(name="Rajesh Kumar")
    amit = Editor(name="Amit Sharma", editor_type="audio")
    floater = Editor(name="Neha Gupta", ignore_conflict=True)
    db.session.add_all([movie, vfx, stage, suite, lounge, rajesh, amit, floater])
    db.session.commit()

    return SimpleNamespace(
        dharma=dharma.id,
        dharma_contact=dharma.contacts[0].id,
        yrf=yrf.id,
        movie=movie.id,
        vfx=vfx.id,
        stage=stage.id,
        suite=suite.id,
        lounge=lounge.id,
        rajesh=rajesh.id,
        amit=amit.id,
        floater=floater.id,
    )


@pytest.fixture
def booking_data(masters):
    """Factory for a valid booking payload; keyword arguments override fields."""
    def _make(**overrides) -> dict:
        data = {
            "room_id": masters.stage,
            "customer_id": masters.dharma,
            "project_id": masters.movie,
            "editor_id": masters.rajesh,
            "booking_date": "2025-12-16",
            "from_time": "09:00",
            "to_time": "14:00",
            "status": "confirmed",
        }
        data.update(overrides)
        return data
    return _make


def _login(client, username: str, role: str):
    create_user(username, "4321", role=role)
    resp = client.post("/auth/login", json={"username": username, "security_pin": "4321"})
    assert resp.status_code == 200
    return client


@pytest.fixture
def admin_client(client):
    return _login(client, "admin", "ADMIN")


@pytest.fixture
def staff_client(client):
    return _login(client, "desk", "NON_GST")
