"""Consistency checks between cached balances, earnings and the ledger.

Checks only read. Repairs are separate, explicit operations that rewrite a
cached value from the records it is derived from.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select, update

from src.api.core.exceptions.base import InternalInconsistencyError, NotFoundError
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import (
    Account,
    Agent,
    AgentEarnings,
    Execution,
    ExecutionStatus,
    LedgerEntry,
    LedgerEntryKind,
    LedgerReferenceType,
)
from src.modules.billing.constants import calculate_revenue_split
from src.modules.ledger.service import AccountReconciliation, LedgerService
from src.utils.settings.billing import BillingSettings


class ReconciliationCheck:
    ACCOUNT_BALANCE = "account_balance"
    ACCOUNT_ENTRY_COUNT = "account_entry_count"
    ENTRY_ARITHMETIC = "entry_arithmetic"
    LEDGER_CHAIN = "ledger_chain"
    LEDGER_SEQUENCE = "ledger_sequence"
    EXECUTION_SNAPSHOT = "execution_snapshot"
    EXECUTION_SNAPSHOT_MISSING = "execution_snapshot_missing"
    EXECUTION_SPLIT = "execution_split"
    EXECUTION_USAGE_ENTRY = "execution_usage_entry"
    ORPHAN_USAGE_ENTRY = "orphan_usage_entry"
    EARNINGS_TOTAL = "earnings_total"
    EARNINGS_BALANCE = "earnings_balance"
    EARNINGS_EXECUTION_COUNT = "earnings_execution_count"
    STALE_EXECUTION = "stale_pending_execution"


class ReconciliationIssue(BaseModel):
    entity_type: str
    entity_id: str
    check: str
    expected: int | str | None = None
    actual: int | str | None = None
    delta: int | None = None


class ReconciliationReport(BaseModel):
    generated_at: datetime
    consistent: bool
    issue_count: int
    issues_by_check: dict[str, int]
    issues: list[ReconciliationIssue]


def _issue(
    entity_type: str,
    entity_id: object,
    check: str,
    expected: int | str | None = None,
    actual: int | str | None = None,
) -> ReconciliationIssue:
    delta = None
    if isinstance(expected, int) and isinstance(actual, int):
        delta = actual - expected
    return ReconciliationIssue(
        entity_type=entity_type,
        entity_id=str(entity_id),
        check=check,
        expected=expected,
        actual=actual,
        delta=delta,
    )


class ReconciliationService(BaseService):
    async def check_account_balances(self) -> list[ReconciliationIssue]:
        """Cached balance and entry count against the account's ledger entries."""
        totals = (
            select(
                LedgerEntry.account_id.label("account_id"),
                func.sum(LedgerEntry.amount_cents).label("total"),
                func.max(LedgerEntry.sequence).label("last_sequence"),
            )
            .group_by(LedgerEntry.account_id)
            .subquery()
        )
        result = await self.db.execute(
            select(
                Account.id,
                Account.balance_cents,
                Account.entry_count,
                func.coalesce(totals.c.total, 0),
                func.coalesce(totals.c.last_sequence, 0),
            ).outerjoin(totals, totals.c.account_id == Account.id)
        )

        issues = []
        for account_id, stored, entry_count, computed, last_sequence in result.all():
            if stored != int(computed):
                issues.append(
                    _issue(
                        "account",
                        account_id,
                        ReconciliationCheck.ACCOUNT_BALANCE,
                        int(computed),
                        stored,
                    )
                )
            if entry_count != int(last_sequence):
                issues.append(
                    _issue(
                        "account",
                        account_id,
                        ReconciliationCheck.ACCOUNT_ENTRY_COUNT,
                        int(last_sequence),
                        entry_count,
                    )
                )
        return issues

    async def check_ledger_chains(self) -> list[ReconciliationIssue]:
        """Entry arithmetic and before/after chaining in sequence order."""
        result = await self.db.execute(
            select(
                LedgerEntry.id,
                LedgerEntry.account_id,
                LedgerEntry.sequence,
                LedgerEntry.amount_cents,
                LedgerEntry.balance_before_cents,
                LedgerEntry.balance_after_cents,
            ).order_by(LedgerEntry.account_id, LedgerEntry.sequence)
        )

        issues = []
        current_account = None
        previous_after = 0
        expected_sequence = 1
        for entry_id, account_id, sequence, amount, before, after in result.all():
            if account_id != current_account:
                current_account = account_id
                previous_after = 0
                expected_sequence = 1

            if after != before + amount:
                issues.append(
                    _issue(
                        "ledger_entry",
                        entry_id,
                        ReconciliationCheck.ENTRY_ARITHMETIC,
                        before + amount,
                        after,
                    )
                )
            if before != previous_after:
                issues.append(
                    _issue(
                        "ledger_entry",
                        entry_id,
                        ReconciliationCheck.LEDGER_CHAIN,
                        previous_after,
                        before,
                    )
                )
            if sequence != expected_sequence:
                issues.append(
                    _issue(
                        "ledger_entry",
                        entry_id,
                        ReconciliationCheck.LEDGER_SEQUENCE,
                        expected_sequence,
                        sequence,
                    )
                )

            previous_after = after
            expected_sequence = sequence + 1
        return issues

    async def check_execution_balances(self) -> list[ReconciliationIssue]:
        """Balance snapshots and revenue split on executions."""
        result = await self.db.execute(
            select(
                Execution.id,
                Execution.status,
                Execution.credits_consumed,
                Execution.platform_fee_cents,
                Execution.creator_share_cents,
                Execution.balance_before_cents,
                Execution.balance_after_cents,
            ).where(
                (Execution.credits_consumed > 0)
                | Execution.balance_before_cents.is_not(None)
                | Execution.balance_after_cents.is_not(None)
            )
        )

        issues = []
        for row in result.all():
            execution_id, status, consumed, fee, share, before, after = row
            if before is None or after is None:
                if status == ExecutionStatus.SUCCESS and consumed > 0:
                    issues.append(
                        _issue(
                            "execution",
                            execution_id,
                            ReconciliationCheck.EXECUTION_SNAPSHOT_MISSING,
                        )
                    )
                continue

            if after != before - consumed:
                issues.append(
                    _issue(
                        "execution",
                        execution_id,
                        ReconciliationCheck.EXECUTION_SNAPSHOT,
                        before - consumed,
                        after,
                    )
                )
            if fee + share != consumed:
                issues.append(
                    _issue(
                        "execution",
                        execution_id,
                        ReconciliationCheck.EXECUTION_SPLIT,
                        consumed,
                        fee + share,
                    )
                )
        return issues

    async def check_execution_usage_entries(self) -> list[ReconciliationIssue]:
        """Each charged execution has exactly one usage entry for its charge."""
        charged = await self.db.execute(
            select(Execution.id, Execution.credits_consumed).where(
                Execution.status == ExecutionStatus.SUCCESS,
                Execution.credits_consumed > 0,
            )
        )
        usage = await self.db.execute(
            select(LedgerEntry.id, LedgerEntry.reference_id, LedgerEntry.amount_cents)
            .where(
                LedgerEntry.kind == LedgerEntryKind.USAGE,
                LedgerEntry.reference_type == LedgerReferenceType.EXECUTION,
            )
        )

        entries_by_execution: dict[str, list[int]] = defaultdict(list)
        entry_ids: dict[str, str] = {}
        for entry_id, reference_id, amount in usage.all():
            entries_by_execution[reference_id].append(amount)
            entry_ids[reference_id] = str(entry_id)

        issues = []
        for execution_id, consumed in charged.all():
            amounts = entries_by_execution.pop(str(execution_id), [])
            if amounts != [-consumed]:
                issues.append(
                    _issue(
                        "execution",
                        execution_id,
                        ReconciliationCheck.EXECUTION_USAGE_ENTRY,
                        -consumed,
                        sum(amounts) if amounts else 0,
                    )
                )

        for reference_id in entries_by_execution:
            issues.append(
                _issue(
                    "ledger_entry",
                    entry_ids[reference_id],
                    ReconciliationCheck.ORPHAN_USAGE_ENTRY,
                    actual=reference_id,
                )
            )
        return issues

    async def _expected_earnings(
        self, agent_id: UUID | None = None
    ) -> dict[UUID, tuple[int, int]]:
        """Expected (total creator share, execution count) per owned agent."""
        stmt = (
            select(Execution.agent_id, Execution.credits_consumed)
            .join(Agent, Agent.id == Execution.agent_id)
            .where(
                Agent.owner_id.is_not(None),
                Execution.status == ExecutionStatus.SUCCESS,
                Execution.credits_consumed > 0,
            )
        )
        if agent_id is not None:
            stmt = stmt.where(Execution.agent_id == agent_id)

        expected: dict[UUID, tuple[int, int]] = {}
        for row_agent_id, consumed in (await self.db.execute(stmt)).all():
            total, count = expected.get(row_agent_id, (0, 0))
            share = calculate_revenue_split(consumed).creator_share_cents
            expected[row_agent_id] = (total + share, count + 1)
        return expected

    async def check_agent_earnings(self) -> list[ReconciliationIssue]:
        """Earnings rows against the creator share of charged executions."""
        expected = await self._expected_earnings()
        result = await self.db.execute(
            select(AgentEarnings).execution_options(populate_existing=True)
        )

        issues = []
        actual: dict[UUID, tuple[int, int]] = {}
        for row in result.scalars().all():
            if row.total_earnings_cents != (
                row.pending_earnings_cents + row.paid_out_cents
            ):
                issues.append(
                    _issue(
                        "agent_earnings",
                        row.id,
                        ReconciliationCheck.EARNINGS_BALANCE,
                        row.pending_earnings_cents + row.paid_out_cents,
                        row.total_earnings_cents,
                    )
                )
            total, count = actual.get(row.agent_id, (0, 0))
            actual[row.agent_id] = (
                total + row.total_earnings_cents,
                count + row.total_executions,
            )

        for agent_id in sorted(set(expected) | set(actual), key=str):
            expected_total, expected_count = expected.get(agent_id, (0, 0))
            actual_total, actual_count = actual.get(agent_id, (0, 0))
            if expected_total != actual_total:
                issues.append(
                    _issue(
                        "agent",
                        agent_id,
                        ReconciliationCheck.EARNINGS_TOTAL,
                        expected_total,
                        actual_total,
                    )
                )
            if expected_count != actual_count:
                issues.append(
                    _issue(
                        "agent",
                        agent_id,
                        ReconciliationCheck.EARNINGS_EXECUTION_COUNT,
                        expected_count,
                        actual_count,
                    )
                )
        return issues

    async def check_stale_executions(
        self, older_than: timedelta | None = None
    ) -> list[ReconciliationIssue]:
        """Pending executions abandoned between the webhook call and settlement."""
        if older_than is None:
            older_than = timedelta(minutes=BillingSettings().STALE_EXECUTION_MINUTES)
        cutoff = datetime.now(timezone.utc) - older_than

        result = await self.db.execute(
            select(Execution.id).where(
                Execution.status == ExecutionStatus.PENDING,
                Execution.created_at < cutoff,
            )
        )
        return [
            _issue(
                "execution",
                execution_id,
                ReconciliationCheck.STALE_EXECUTION,
                actual=ExecutionStatus.PENDING.value,
            )
            for execution_id in result.scalars().all()
        ]

    async def build_report(self) -> ReconciliationReport:
        issues: list[ReconciliationIssue] = []
        issues += await self.check_account_balances()
        issues += await self.check_ledger_chains()
        issues += await self.check_execution_balances()
        issues += await self.check_execution_usage_entries()
        issues += await self.check_agent_earnings()
        issues += await self.check_stale_executions()

        by_check: dict[str, int] = defaultdict(int)
        for issue in issues:
            by_check[issue.check] += 1

        if issues:
            self.logger.warning(
                "Reconciliation found inconsistencies",
                issue_count=len(issues),
                issues_by_check=dict(by_check),
            )
        else:
            self.logger.info("Reconciliation clean")

        return ReconciliationReport(
            generated_at=datetime.now(timezone.utc),
            consistent=not issues,
            issue_count=len(issues),
            issues_by_check=dict(by_check),
            issues=issues,
        )

    async def assert_consistent(self) -> ReconciliationReport:
        report = await self.build_report()
        if not report.consistent:
            raise InternalInconsistencyError(
                {
                    "issue_count": report.issue_count,
                    "issues_by_check": report.issues_by_check,
                    "issues": [
                        issue.model_dump(mode="json") for issue in report.issues[:50]
                    ],
                }
            )
        return report

    async def repair_account_balance(self, account_id: UUID) -> AccountReconciliation:
        """Overwrite the cached balance and entry count from the ledger.

        The account row stays locked from the ledger sum to the write, so an
        append_entry racing the repair waits and lands on the repaired balance.
        """
        locked = await self.db.execute(
            select(Account.id).where(Account.id == account_id).with_for_update()
        )
        if locked.scalar_one_or_none() is None:
            await self.db.rollback()
            raise NotFoundError(
                MessageCode.ACCOUNT_NOT_FOUND, {"account_id": str(account_id)}
            )

        ledger = LedgerService(self.db)
        before = await ledger.reconcile(account_id)

        last_sequence = (
            await self.db.execute(
                select(func.coalesce(func.max(LedgerEntry.sequence), 0)).where(
                    LedgerEntry.account_id == account_id
                )
            )
        ).scalar_one()

        await self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(
                balance_cents=before.computed_balance_cents,
                entry_count=int(last_sequence),
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        after = await ledger.reconcile(account_id)
        if not before.consistent:
            self.logger.warning(
                "Account balance repaired",
                account_id=str(account_id),
                old_balance_cents=before.stored_balance_cents,
                new_balance_cents=after.stored_balance_cents,
            )
        return after

    async def repair_agent_earnings(self, agent_id: UUID) -> AgentEarnings | None:
        """Re-derive total, pending and count for an agent, keeping paid_out."""
        agent = await self.db.get(Agent, agent_id, populate_existing=True)
        if agent is None:
            raise NotFoundError(MessageCode.AGENT_NOT_FOUND, {"agent_id": str(agent_id)})
        owner_id = agent.owner_id
        if owner_id is None:
            return None

        # Row lock held across the recount; record_earning waits on it
        result = await self.db.execute(
            select(AgentEarnings)
            .where(
                AgentEarnings.agent_id == agent_id,
                AgentEarnings.owner_id == owner_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()

        expected_total, expected_count = (
            await self._expected_earnings(agent_id)
        ).get(agent_id, (0, 0))
        if row is None:
            if expected_count == 0:
                return None
            row = AgentEarnings(
                agent_id=agent_id,
                owner_id=owner_id,
                total_earnings_cents=0,
                pending_earnings_cents=0,
                paid_out_cents=0,
                total_executions=0,
            )
            self.db.add(row)

        paid_out = row.paid_out_cents
        pending = expected_total - paid_out
        if pending < 0:
            await self.db.rollback()
            raise InternalInconsistencyError(
                {
                    "agent_id": str(agent_id),
                    "description": "Paid out more than the agent has earned",
                    "expected_total_cents": expected_total,
                    "paid_out_cents": paid_out,
                }
            )

        old = (row.total_earnings_cents, row.pending_earnings_cents, row.total_executions)
        row.total_earnings_cents = expected_total
        row.pending_earnings_cents = pending
        row.total_executions = expected_count
        await self.db.commit()

        if old != (expected_total, pending, expected_count):
            self.logger.warning(
                "Agent earnings repaired",
                agent_id=str(agent_id),
                old_total_cents=old[0],
                new_total_cents=expected_total,
                old_pending_cents=old[1],
                new_pending_cents=pending,
                old_executions=old[2],
                new_executions=expected_count,
            )
        return row
