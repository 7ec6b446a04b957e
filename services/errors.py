class ServiceError(Exception):
    """
    Base for every failure the service layer reports to a caller.
    `kind` and `status_code` let the HTTP layer render it without
    knowing the concrete class.
    """
    status_code = 400
    kind = "error"
    default_message = "Request failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.message, "kind": self.kind}


class NotFound(ServiceError):
    status_code = 404
    kind = "not_found"
    default_message = "Not found"


class InvalidRange(ServiceError):
    status_code = 400
    kind = "invalid_range"
    default_message = "end_date must be after start_date"


class ValidationError(ServiceError):
    status_code = 400
    kind = "validation_error"
    default_message = "Invalid input"


class VehicleUnavailable(ServiceError):
    status_code = 409
    kind = "vehicle_unavailable"
    default_message = "Vehicle is not available"


class SlotConflict(ServiceError):
    status_code = 409
    kind = "slot_conflict"
    default_message = "Vehicle is already booked for the selected dates"


class Forbidden(ServiceError):
    status_code = 403
    kind = "forbidden"
    default_message = "Forbidden"


class InvalidTransition(ServiceError):
    status_code = 409
    kind = "invalid_transition"
    default_message = "Status change not allowed"


class StoreError(ServiceError):
    status_code = 500
    kind = "store_error"
    default_message = "Storage failure"


class Conflict(ServiceError):
    status_code = 409
    kind = "conflict"
    default_message = "Conflicts with existing data"
