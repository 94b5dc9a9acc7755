from datetime import datetime
from models.db import db

PROJECT_TYPES = ("movie", "serial", "web_series", "ad", "teaser", "trilogy")

class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    company_name = db.Column(db.String(160), nullable=True)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    gst_number = db.Column(db.String(30), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    contacts = db.relationship(
        "CustomerContact", backref="customer", cascade="all, delete-orphan", order_by="CustomerContact.id"
    )

class CustomerContact(db.Model):
    __tablename__ = "customer_contacts"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    designation = db.Column(db.String(80), nullable=True)
    is_primary = db.Column(db.Boolean, default=False, nullable=False)

class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    project_type = db.Column(db.String(20), nullable=False, default="movie")
    description = db.Column(db.Text, nullable=True)

    # one-way marker, set by the first chalan and never cleared
    has_chalan_created = db.Column(db.Boolean, default=False, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    customer = db.relationship("Customer")
