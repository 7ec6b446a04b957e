from datetime import datetime
from models.db import db

FUEL_TYPES = ("petrol", "diesel", "electric", "hybrid")
TRANSMISSIONS = ("manual", "automatic")

class Vehicle(db.Model):
    __tablename__ = "vehicles"

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(160), unique=True, nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(40), nullable=False)
    brand = db.Column(db.String(80), nullable=False)
    model = db.Column(db.String(80), nullable=False)
    year = db.Column(db.Integer, nullable=False)

    price_per_day = db.Column(db.Numeric(10, 2), nullable=False)
    # manual admin toggle, never derived from reservations
    availability = db.Column(db.Boolean, default=True, nullable=False)

    description = db.Column(db.Text, nullable=True)
    features = db.Column(db.JSON, nullable=False, default=list)
    images = db.Column(db.JSON, nullable=False, default=list)  # URLs only

    seating_capacity = db.Column(db.Integer, nullable=False)
    fuel_type = db.Column(db.String(20), nullable=False)
    transmission = db.Column(db.String(20), nullable=False)
    mileage = db.Column(db.String(40), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("price_per_day >= 0", name="ck_vehicle_price_non_negative"),
        db.CheckConstraint("seating_capacity >= 1", name="ck_vehicle_seats_positive"),
    )
