import logging
from datetime import date

from models import db
from models.customer import Customer, CustomerContact, Project
from models.editor import Editor, EditorLeave
from models.room import Room
from models.user import User, Role
from security.password import hash_pin
from security.rbac import ROLES
from services.bookings import create_booking
from services.chalans import create_chalan

logger = logging.getLogger(__name__)

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def create_user(username: str, pin: str, role: str = "NON_GST", full_name: str = None) -> User:
    username = username.strip().lower()
    if User.query.filter_by(username=username).first():
        raise ValueError(f"User {username} already exists")

    role_row = Role.query.filter_by(name=role.upper()).first()
    if role_row is None:
        raise ValueError(f"Unknown role {role}")

    user = User(username=username, pin_hash=hash_pin(pin), full_name=full_name)
    user.roles.append(role_row)
    db.session.add(user)
    db.session.commit()
    return user

def seed_demo():
    """Small December 2025 data set including one room conflict on the 16th."""
    if Customer.query.first() is not None:
        logger.info("Demo data already exists, skipping")
        return False

    customers = []
    for name, phone in (("Dharma Productions", "9876543210"), ("Yash Raj Films", "9876543211"), ("Maddock Films", "9876543215")):
        customer = Customer(name=name, company_name=name, phone=phone)
        customer.contacts.append(CustomerContact(name=f"{name} Contact", phone=phone, designation="Production Manager", is_primary=True))
        customers.append(customer)
    db.session.add_all(customers)
    db.session.flush()

    projects = [
        Project(name="Rocky Aur Rani", customer_id=customers[0].id, project_type="movie"),
        Project(name="Tiger 3 VFX", customer_id=customers[1].id, project_type="movie"),
        Project(name="Stree 2", customer_id=customers[2].id, project_type="movie"),
    ]
    rooms = [
        Room(name="Sound Stage A", room_type="sound", capacity=4),
        Room(name="Editing Suite 1", room_type="editing", capacity=2),
        Room(name="VFX Bay Alpha", room_type="vfx", capacity=5),
        Room(name="Client Lounge", room_type="client_office", capacity=10, ignore_conflict=True),
    ]
    editors = [
        Editor(name="Rajesh Kumar", editor_type="video", join_date=date(2020, 1, 15)),
        Editor(name="Amit Sharma", editor_type="audio", join_date=date(2019, 6, 20)),
        Editor(name="Priya Patel", editor_type="vfx", join_date=date(2021, 3, 10)),
        Editor(name="Neha Gupta", editor_type="video", join_date=date(2022, 2, 1), ignore_conflict=True),
    ]
    db.session.add_all(projects + rooms + editors)
    db.session.flush()

    db.session.add_all([
        EditorLeave(editor_id=editors[0].id, from_date=date(2025, 12, 25), to_date=date(2025, 12, 25), reason="Christmas Holiday"),
        EditorLeave(editor_id=editors[1].id, from_date=date(2025, 12, 26), to_date=date(2025, 12, 27), reason="Personal Leave"),
        EditorLeave(editor_id=editors[2].id, from_date=date(2025, 12, 16), to_date=date(2025, 12, 16), reason="Personal Work"),
    ])
    db.session.commit()

    def _book(room, customer, project, editor, day, start, end, status):
        return create_booking({
            "room_id": room.id,
            "customer_id": customer.id,
            "project_id": project.id,
            "contact_id": customer.contacts[0].id,
            "editor_id": editor.id,
            "booking_date": day,
            "from_time": start,
            "to_time": end,
            "break_hours": 1,
            "status": status,
        })

    first = _book(rooms[0], customers[0], projects[0], editors[0], "2025-12-02", "09:00", "18:00", "confirmed")
    _book(rooms[1], customers[1], projects[1], editors[1], "2025-12-03", "10:00", "19:00", "confirmed")
    _book(rooms[2], customers[2], projects[2], editors[2], "2025-12-10", "10:00", "18:00", "planning")
    _book(rooms[1], customers[1], projects[1], editors[1], "2025-12-12", "08:00", "20:00", "tentative")
    _book(rooms[0], customers[0], projects[0], editors[0], "2025-12-16", "09:00", "14:00", "confirmed")
    _book(rooms[0], customers[1], projects[1], editors[1], "2025-12-16", "13:00", "18:00", "confirmed")

    create_chalan(
        {"customer_id": customers[0].id, "project_id": projects[0].id, "booking_id": first.id, "chalan_date": "2025-12-02",
         "notes": "Post production work completed"},
        [{"description": "Sound Stage A - 8 hours", "quantity": 8, "rate": 2500, "amount": 20000}],
    )
    logger.info("Demo data seeded")
    return True
