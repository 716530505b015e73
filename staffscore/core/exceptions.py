class SnapshotError(Exception):
    """Base exception for the monthly score snapshot job."""


class SnapshotCollectionError(SnapshotError):
    """Raised when one of a company's source reads fails."""

    def __init__(self, company_id: int, source: str, message: str):
        super().__init__(f"company {company_id}: failed to load {source}: {message}")
        self.company_id = company_id
        self.source = source


class SnapshotPersistenceError(SnapshotError):
    """Raised when a company's snapshot batch could not be written."""

    def __init__(self, company_id: int, message: str):
        super().__init__(f"company {company_id}: snapshot write failed: {message}")
        self.company_id = company_id
