"""Exception types raised by the ingestion pipeline."""


class IngestError(Exception):
    """Base class for ingestion errors."""


class DocumentRejected(IngestError):
    """The whole document is unusable; nothing may be written for it."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class IngestTimeout(DocumentRejected):
    """Parsing did not finish within the wall-clock limit."""


class SegmentationError(IngestError):
    """A data blob could not be split into fields unambiguously."""

    def __init__(self, reason: str, blob: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.blob = blob


class StoreWriteError(IngestError):
    """A store call failed while writing a record."""


class MetadataWriteForbidden(IngestError):
    """A write targeted a column or table the snapshot pipeline does not own."""
