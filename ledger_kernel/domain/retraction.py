"""
Retraction guard -- decides whether a record may be hard-deleted.

A record may be retracted only if, for every account it references, it is
the most recently appended record touching that account.  For a transfer
both the source and the destination account must name *this* record as
their latest; if either has a newer record the retraction is refused.

Retraction is not re-orderable: once record N is gone, record N-1 becomes
retractable only if it is now the latest for all of its accounts.
"""

from collections.abc import Mapping

from ledger_kernel.domain.records import Record


def blocking_accounts(
    record: Record,
    latest_by_account: Mapping[str, int | None],
) -> dict[str, int | None]:
    """
    Accounts whose latest record is not ``record``.

    Args:
        record: The candidate for retraction.
        latest_by_account: Highest seq touching each referenced account
            (None if the account has no records).

    Returns:
        {account: latest seq} for every account that blocks retraction;
        empty when retraction is allowed.
    """
    blocking: dict[str, int | None] = {}
    for account in record.accounts:
        latest = latest_by_account.get(account)
        if latest != record.seq:
            blocking[account] = latest
    return blocking


def can_retract(record: Record, latest_by_account: Mapping[str, int | None]) -> bool:
    """True iff ``record`` is the latest record for every account it touches."""
    return not blocking_accounts(record, latest_by_account)
