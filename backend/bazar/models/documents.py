from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic document sequences.

    Backs human-readable numbers (invoice numbers per year,
    supplier/client/product codes).
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("scope", "document_type", name="uq_doc_sequences_scope_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # e.g. "2026" for yearly invoice numbering, "" for entity codes
    scope = db.Column(db.String(32), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "scope": self.scope,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
