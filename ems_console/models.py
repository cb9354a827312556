from __future__ import annotations

import enum


class JobStatus(str, enum.Enum):
    PENDING = "PENDING"
    TRAVELING = "TRAVELING"
    STARTED = "STARTED"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCEL = "CANCEL"


class JobCardType(str, enum.Enum):
    SERVICE = "SERVICE"
    REPAIR = "REPAIR"


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


class ReportKind(str, enum.Enum):
    DAILY_TIME_TRACKING = "daily-time-tracking"
    PERFORMANCE_OT = "performance-ot"
    TIME_TRACKING_PERFORMANCE = "time-tracking-performance"
    EMPLOYEE_ACHIEVEMENT = "employee-achievement"


class ExportFormat(str, enum.Enum):
    PDF = "pdf"
    XLSX = "xlsx"


# Reports that only make sense for one employee.
EMPLOYEE_SCOPED_REPORTS = frozenset({ReportKind.PERFORMANCE_OT, ReportKind.EMPLOYEE_ACHIEVEMENT})
