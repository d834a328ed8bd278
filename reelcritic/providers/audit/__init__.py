from reelcritic.providers.audit.sqlite_audit_provider import SQLiteAuditProvider

__all__ = ["SQLiteAuditProvider"]
