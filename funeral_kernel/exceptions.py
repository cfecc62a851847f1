"""
Typed exception hierarchy for the funeral home ERP.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from FuneralERPError:

    FuneralERPError (base)
    |
    +-- ValidationError                 malformed or out-of-policy input
    |
    +-- NotFoundError                   missing entity (local or Go backend)
    |
    +-- BusinessRuleViolationError      valid input, disallowed by a domain rule
    |   +-- BusinessHoursError
    |   +-- AppointmentCapacityError
    |   +-- AppointmentConflictError
    |   +-- AppointmentCancellationError
    |
    +-- InvalidStateTransitionError     status change not in the entity's table
    |
    +-- PersistenceError                database adapter failure
    |   +-- StaleVersionError           SCD2 write against a superseded version
    |
    +-- NetworkError                    Go backend / transport failure

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Input           | VALIDATION_ERROR            | Bad command field, policy limit exceeded
Lookup          | NOT_FOUND                   | No current version / Go 404
Domain          | BUSINESS_RULE_VIOLATION     | e.g. refund of a non-succeeded payment
                | OUTSIDE_BUSINESS_HOURS      | Appointment outside 8-17 Mon-Fri / lunch
                | APPOINTMENT_CAPACITY        | Director already has 4 appointments
                | APPOINTMENT_CONFLICT        | Overlaps an existing appointment
                | APPOINTMENT_CANCELLATION    | Cancellation inside the 24h window
State           | INVALID_STATE_TRANSITION    | e.g. payment pending -> succeeded
Adapter         | PERSISTENCE_ERROR           | SQLAlchemy failure during read/write
                | STALE_VERSION               | Entity version <= current stored version
                | NETWORK_ERROR               | HTTP error or transport failure

===============================================================================
HANDLING PATTERNS
===============================================================================

Use cases surface the first failing step's typed error. Nothing in the
application layer retries or compensates; services roll back their session
and re-raise.

    try:
        result = payment_service.process_refund(...)
    except ValidationError as e:
        return {"error": e.code, "field": e.field, "message": str(e)}
    except BusinessRuleViolationError as e:
        return {"error": e.code, "rule": e.rule, "message": str(e)}
"""


class FuneralERPError(Exception):
    """
    Base exception for all funeral home ERP errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification and keep their constructor arguments as attributes.
    """

    code: str = "FUNERAL_ERP_ERROR"


class ValidationError(FuneralERPError):
    """Command input is malformed or outside policy limits."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(FuneralERPError):
    """An entity with the given identifier does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str, message: str | None = None):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(message or f"{entity_type} not found: {entity_id}")


class BusinessRuleViolationError(FuneralERPError):
    """Input is well-formed but a domain rule forbids the operation."""

    code: str = "BUSINESS_RULE_VIOLATION"

    def __init__(self, message: str, rule: str | None = None):
        self.rule = rule
        super().__init__(message)


class BusinessHoursError(BusinessRuleViolationError):
    """Appointment falls outside business hours or inside the lunch break."""

    code: str = "OUTSIDE_BUSINESS_HOURS"

    def __init__(self, message: str):
        super().__init__(message, rule="business_hours")


class AppointmentCapacityError(BusinessRuleViolationError):
    """Director has reached the daily appointment limit."""

    code: str = "APPOINTMENT_CAPACITY"

    def __init__(self, director_id: str, day: str, limit: int):
        self.director_id = director_id
        self.day = day
        self.limit = limit
        super().__init__(
            f"Director {director_id} already has {limit} appointments on {day}",
            rule="max_appointments_per_day",
        )


class AppointmentConflictError(BusinessRuleViolationError):
    """Requested time overlaps one of the director's appointments."""

    code: str = "APPOINTMENT_CONFLICT"

    def __init__(self, director_id: str, conflicting_appointment_id: str):
        self.director_id = director_id
        self.conflicting_appointment_id = conflicting_appointment_id
        super().__init__(
            f"Director {director_id} has a conflicting appointment "
            f"{conflicting_appointment_id}",
            rule="no_overlap",
        )


class AppointmentCancellationError(BusinessRuleViolationError):
    """Appointment can no longer be cancelled."""

    code: str = "APPOINTMENT_CANCELLATION"

    def __init__(self, appointment_id: str, message: str):
        self.appointment_id = appointment_id
        super().__init__(message, rule="cancellation_window")


class InvalidStateTransitionError(FuneralERPError):
    """Requested status change is not permitted from the current status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, entity_type: str, from_state: str, to_state: str):
        self.entity_type = entity_type
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Cannot transition {entity_type} from {from_state} to {to_state}"
        )


class PersistenceError(FuneralERPError):
    """Database adapter failure."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)


class StaleVersionError(PersistenceError):
    """An SCD2 save was attempted from a superseded version of the entity."""

    code: str = "STALE_VERSION"

    def __init__(
        self,
        entity_type: str,
        business_key: str,
        entity_version: int,
        current_version: int,
    ):
        self.entity_type = entity_type
        self.business_key = business_key
        self.entity_version = entity_version
        self.current_version = current_version
        super().__init__(
            f"{entity_type} {business_key} was modified concurrently: "
            f"saving version {entity_version} but current is {current_version}"
        )


class NetworkError(FuneralERPError):
    """The Go backend could not be reached or answered with an error."""

    code: str = "NETWORK_ERROR"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
