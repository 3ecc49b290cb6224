class AppError(Exception):
    """Base class for all application exceptions."""

    code = "app_error"

    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code, "details": self.details}


class ResourceNotFoundError(AppError):
    """Raised when a referenced teacher, subject, year, term or target does not exist."""

    code = "not_found"

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class IneligibleError(AppError):
    """Qualification failure. ``reason`` is one of the QualificationReason values."""

    code = "ineligible"

    def __init__(self, message: str, *, reason: str, details: dict = None):
        payload = {"reason": reason}
        payload.update(details or {})
        super().__init__(message, status_code=422, details=payload)
        self.reason = reason


class WorkloadExceededError(AppError):
    code = "workload_exceeded"

    def __init__(self, *, current: int, adding: int, maximum: int, teacher_id: str):
        proposed = current + adding
        super().__init__(
            f"Teacher will be overloaded ({proposed} weekly periods, maximum {maximum})",
            status_code=422,
            details={
                "teacher_id": teacher_id,
                "current": current,
                "adding": adding,
                "proposed": proposed,
                "max": maximum,
                "available_capacity": max(0, maximum - current),
            },
        )
        self.current = current
        self.proposed = proposed
        self.maximum = maximum


class SlotConflictError(AppError):
    code = "slot_conflict"

    def __init__(
        self,
        *,
        axis: str,
        day_of_week: str,
        period_number: int,
        occupant_period_id: str | None = None,
        occupant_assignment_id: str | None = None,
    ):
        super().__init__(
            f"{day_of_week} period {period_number} is already occupied on the {axis} axis",
            status_code=409,
            details={
                "axis": axis,
                "day_of_week": day_of_week,
                "period_number": period_number,
                "occupant_period_id": occupant_period_id,
                "occupant_assignment_id": occupant_assignment_id,
            },
        )
        self.axis = axis
        self.occupant_assignment_id = occupant_assignment_id


class CurriculumRuleViolationError(AppError):
    code = "curriculum_rule_violation"

    def __init__(self, violations: list[dict]):
        first = violations[0]["message"] if violations else "Curriculum rule violated"
        super().__init__(first, status_code=422, details={"violations": violations})
        self.violations = violations


class DuplicateAssignmentError(AppError):
    code = "duplicate_assignment"

    def __init__(self, message: str = "This assignment already exists", details: dict = None):
        super().__init__(message, status_code=409, details=details)


class InvalidAssignmentTargetError(AppError):
    code = "invalid_target"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)


class WorkloadBelowMinimumError(AppError):
    code = "workload_below_minimum"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)


class ApprovalStateError(AppError):
    code = "approval_state"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class TeacherStateError(AppError):
    """Raised when a deactivated teacher is given new work."""

    code = "teacher_inactive"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class PeriodLimitError(AppError):
    code = "period_limit"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)


class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""

    code = "configuration_error"

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class TermStateError(AppError):
    """Raised when a term is finalized, or cannot be finalized yet."""

    code = "term_state"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class BatchLimitError(AppError):
    code = "batch_limit"

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Batch of {size} items exceeds the limit of {limit}",
            status_code=422,
            details={"size": size, "limit": limit},
        )
