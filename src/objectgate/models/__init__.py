from objectgate.models.accounting import attach_accounting_triggers
from objectgate.models.file import File
from objectgate.models.user import User

attach_accounting_triggers(File.__table__)

__all__ = ["File", "User"]
