# ezirisk/storage/errors.py


class EziRiskError(Exception):
    """Base class for errors raised by the assessment services."""


class RecordNotFound(EziRiskError):
    def __init__(self, table: str, key: str):
        super().__init__(f"{table} record not found: {key}")
        self.table = table
        self.key = key


class DocumentLocked(EziRiskError):
    def __init__(self, status: str):
        super().__init__(f"Document is {status} and cannot be modified")
        self.status = status


class AttachmentRejected(EziRiskError):
    pass


class StorageQuotaExceeded(EziRiskError):
    pass


class InvalidStorageKey(EziRiskError):
    pass


class IssueBlocked(EziRiskError):
    def __init__(self, blockers):
        super().__init__("; ".join(b.message for b in blockers) or "Document cannot be issued")
        self.blockers = list(blockers)


class VersionConflict(EziRiskError):
    pass
