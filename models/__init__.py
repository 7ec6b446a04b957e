from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .vehicle import Vehicle
from .reservation import Reservation
from .booking_guard import VehicleBookingGuard
