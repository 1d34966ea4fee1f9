from feedesk.core.models.audit_log import DeskAuditLog
from feedesk.core.models.desk_session import DeskSession
