"""Models module - imports all models for SQLModel registration."""

from rfd_store.models.rfd import RFD, RFDBase, RFDRead, RFDWrite

__all__ = [
    "RFD",
    "RFDBase",
    "RFDRead",
    "RFDWrite",
]
