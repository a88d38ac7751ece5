"""Endpoints for appending to and auditing a child's points ledger."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from points_economy.database import get_session
from points_economy.schemas import (
    LedgerEntryCreate,
    LedgerEntryRead,
    LedgerResponse,
    LedgerSummary,
    LedgerAuditRead,
)
from points_economy.ledger import (
    append_entry,
    get_ledger,
    summarize_ledger,
    verify_ledger,
)
from points_economy.crud import get_child_account
from points_economy.exceptions import AccountNotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.post("/{child_id}/entries", response_model=LedgerEntryRead)
async def add_entry(
    child_id: int,
    entry: LedgerEntryCreate,
    db: AsyncSession = Depends(get_session),
):
    """Append a manual bonus, penalty or adjustment to a child's ledger."""
    return await append_entry(
        db,
        child_id,
        entry.transaction_type,
        entry.points_amount,
        reference_type=entry.reference_type,
        reference_id=entry.reference_id,
        breakdown=entry.breakdown,
        description=entry.description,
    )


@router.get("/child/{child_id}", response_model=LedgerResponse)
async def read_ledger(child_id: int, db: AsyncSession = Depends(get_session)):
    """Return the full ledger and balance for a child."""
    account, entries = await get_ledger(db, child_id)
    return {"balance": account.points_balance, "entries": entries}


@router.get("/child/{child_id}/summary", response_model=LedgerSummary)
async def read_ledger_summary(
    child_id: int, db: AsyncSession = Depends(get_session)
):
    totals = await summarize_ledger(db, child_id)
    account = await get_child_account(db, child_id)
    if not account:
        raise AccountNotFound(child_id)
    return {"child_id": child_id, "balance": account.points_balance, "totals": totals}


@router.get("/child/{child_id}/audit", response_model=LedgerAuditRead)
async def audit_ledger(child_id: int, db: AsyncSession = Depends(get_session)):
    """Replay the ledger and confirm it reproduces the stored balance."""
    audit = await verify_ledger(db, child_id)
    logger.info(
        "Ledger audit for child %s passed (%s entries)",
        child_id,
        audit.entries_checked,
    )
    return LedgerAuditRead.model_validate(audit)
