from .db import db, atomic
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .customer import Customer, CustomerContact, Project
from .room import Room
from .editor import Editor, EditorLeave
from .booking import Booking, BookingLog
from .chalan import Chalan, ChalanItem, ChalanRevision
