from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    ACCOUNT = "account"
    TEACHER = "teacher"


class DeskStatus(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SUCCESS = "success"
    FAILED = "failed"


class ReportStatus(str, Enum):
    VALID = "Valid"
    VOIDED = "Voided"
    ALL = "All"


class GroupBy(str, Enum):
    NONE = "none"
    CLASS = "class"
    FEE_HEAD = "feeHead"
    MODE = "mode"
    DAY = "day"
    MONTH = "month"
    STUDENT = "student"


class QuickRange(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    FISCAL_YEAR = "fy"
    CUSTOM = "custom"


class AuditAction(str, Enum):
    PAYMENT = "PAYMENT"
    DUPLICATE_REJECTED = "DUPLICATE_REJECTED"
    VOID = "VOID"
    UNVOID = "UNVOID"
    BULK_PAYMENT = "BULK_PAYMENT"
