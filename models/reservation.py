from datetime import datetime
from models.db import db

class Reservation(db.Model):
    __tablename__ = "reservations"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=False, index=True)

    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    # status values: pending, confirmed, completed, cancelled

    # computed once at creation, never recomputed
    total_cost = db.Column(db.Numeric(12, 2), nullable=False)

    pickup_location = db.Column(db.String(255), nullable=True)
    dropoff_location = db.Column(db.String(255), nullable=True)
    special_requests = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    vehicle = db.relationship("Vehicle", lazy="joined")
    user = db.relationship("User")

    __table_args__ = (
        db.CheckConstraint("start_date < end_date", name="ck_reservation_range"),
        db.CheckConstraint("total_cost >= 0", name="ck_reservation_cost_non_negative"),
        db.Index("ix_reservations_vehicle_status", "vehicle_id", "status"),
    )
