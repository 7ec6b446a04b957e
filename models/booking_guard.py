from models.db import db

class VehicleBookingGuard(db.Model):
    """
    One row per vehicle. Every reservation insert bumps `version` with a
    compare-and-set in the same transaction, so two bookings for the same
    vehicle can never both commit on a stale conflict check.
    """
    __tablename__ = "vehicle_booking_guards"

    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id", ondelete="CASCADE"), primary_key=True)
    version = db.Column(db.Integer, nullable=False, default=0)
