# Overview: Atomic allocation of human-readable document numbers and entity codes.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _allocate(scope: str, document_type: str) -> int:
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.scope == scope,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(scope=scope, document_type=document_type)
            .scalar()
        )
        return current - 1

    # First number for this (scope, type). A concurrent writer may insert the
    # same counter row first; the savepoint keeps the caller's transaction.
    try:
        with db.session.begin_nested():
            db.session.add(DocumentSequence(scope=scope, document_type=document_type, next_number=2))
        return 1
    except IntegrityError:
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(scope=scope, document_type=document_type)
            .scalar()
        )
        return current - 1


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    scope: str = "",
    pad: int = 4,
) -> str:
    """
    Atomically allocate the next number for a (scope, document_type) counter.

    Runs inside the caller's transaction; the counter row stays locked by the
    UPDATE until that transaction ends, so two transactions never receive
    the same number.

        next_document_number(document_type="invoice", prefix="FAC", scope="2026")
            -> "FAC-2026-0001"
        next_document_number(document_type="supplier", prefix="SUP", pad=3)
            -> "SUP-001"
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not prefix:
        raise DocumentSequenceError("prefix is required")

    number = _allocate(scope, document_type)
    if scope:
        return f"{prefix}-{scope}-{number:0{pad}d}"
    return f"{prefix}-{number:0{pad}d}"
