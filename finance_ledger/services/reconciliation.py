"""Reconciliation matching engine.

Scores every (statement line, open transaction) pair on amount, date and
description, and proposes the best pair per line when its confidence
reaches the acceptance threshold. Proposals are not applied here; see
``finance_ledger.services.confirmation``.
"""

from __future__ import annotations

import enum
import os
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from uuid import UUID

import yaml

from finance_ledger.logger import get_logger, log_timing
from finance_ledger.models import OPEN_STATUSES
from finance_ledger.services.ledger import Transaction
from finance_ledger.services.repository import LedgerRepository
from finance_ledger.services.statement import ParsedStatement, StatementLine, parse_statement

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReconciliationConfig:
    """Runtime configuration for reconciliation scoring."""

    weight_amount: Decimal
    weight_date: Decimal
    weight_description: Decimal
    accept_threshold: Decimal
    amount_exact: Decimal
    amount_near: Decimal
    date_exact_days: int
    date_near_days: int
    date_far_days: int


DEFAULT_CONFIG = ReconciliationConfig(
    weight_amount=Decimal("0.4"),
    weight_date=Decimal("0.3"),
    weight_description=Decimal("0.3"),
    accept_threshold=Decimal("0.7"),
    amount_exact=Decimal("0.01"),
    amount_near=Decimal("10"),
    date_exact_days=0,
    date_near_days=2,
    date_far_days=7,
)

_config_cache: ReconciliationConfig | None = None


def load_reconciliation_config(force_reload: bool = False) -> ReconciliationConfig:
    """Load reconciliation configuration from YAML if available.

    Caches the result to avoid repeated disk I/O.
    """
    global _config_cache
    if _config_cache is not None and not force_reload:
        return _config_cache

    config = DEFAULT_CONFIG
    config_path = Path(__file__).resolve().parents[2] / "config" / "reconciliation.yaml"

    if config_path.exists():
        try:
            raw = yaml.safe_load(config_path.read_text()) or {}
            scoring = raw.get("scoring", {})
            weights = scoring.get("weights", {})
            thresholds = scoring.get("thresholds", {})
            tolerances = scoring.get("tolerances", {})

            config = ReconciliationConfig(
                weight_amount=Decimal(str(weights.get("amount", config.weight_amount))),
                weight_date=Decimal(str(weights.get("date", config.weight_date))),
                weight_description=Decimal(str(weights.get("description", config.weight_description))),
                accept_threshold=Decimal(str(thresholds.get("accept", config.accept_threshold))),
                amount_exact=Decimal(str(tolerances.get("amount_exact", config.amount_exact))),
                amount_near=Decimal(str(tolerances.get("amount_near", config.amount_near))),
                date_exact_days=int(tolerances.get("date_exact_days", config.date_exact_days)),
                date_near_days=int(tolerances.get("date_near_days", config.date_near_days)),
                date_far_days=int(tolerances.get("date_far_days", config.date_far_days)),
            )
        except Exception as e:
            logger.warning(
                "Failed to load reconciliation config - using defaults",
                config_path=str(config_path),
                error=str(e),
                error_type=type(e).__name__,
            )
            config = DEFAULT_CONFIG

    accept_env = os.getenv("RECONCILIATION_ACCEPT_THRESHOLD")
    if accept_env:
        config = replace(config, accept_threshold=Decimal(accept_env))

    _config_cache = config
    return config


# =============================================================================
# Scoring
# =============================================================================


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit insert/delete/substitute costs."""
    if len(a) < len(b):
        return edit_distance(b, a)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a):
        curr = [i + 1]
        for j, cb in enumerate(b):
            cost = 0 if ca == cb else 1
            curr.append(min(curr[j] + 1, prev[j + 1] + 1, prev[j] + cost))
        prev = curr
    return prev[-1]


def string_similarity(a: str, b: str) -> float:
    """Return ``(L - distance) / L`` over lower-cased strings, L the longer length."""
    a, b = a.lower(), b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - edit_distance(a, b)) / longest


@dataclass(frozen=True)
class ScoreBreakdown:
    amount: Decimal
    date: Decimal
    description: Decimal

    @property
    def total(self) -> Decimal:
        return self.amount + self.date + self.description

    def as_dict(self) -> dict[str, float]:
        # Scores are not money; floats are fine for reporting.
        return {
            "amount": round(float(self.amount), 4),
            "date": round(float(self.date), 4),
            "description": round(float(self.description), 4),
        }


def score_amount(line: StatementLine, transaction: Transaction, config: ReconciliationConfig) -> Decimal:
    diff = abs(line.absolute_amount - transaction.amount)
    if diff < config.amount_exact:
        return config.weight_amount
    if diff < config.amount_near:
        return config.weight_amount / 2
    return Decimal("0")


def score_date(line: StatementLine, transaction: Transaction, config: ReconciliationConfig) -> Decimal:
    days = abs((line.date - transaction.transaction_date).days)
    if days <= config.date_exact_days:
        return config.weight_date
    if days <= config.date_near_days:
        return config.weight_date * 2 / 3
    if days <= config.date_far_days:
        return config.weight_date / 3
    return Decimal("0")


def score_description(line: StatementLine, transaction: Transaction, config: ReconciliationConfig) -> Decimal:
    similarity = string_similarity(line.description, transaction.description)
    return config.weight_description * Decimal(str(similarity))


def score_match(
    line: StatementLine, transaction: Transaction, config: ReconciliationConfig | None = None
) -> ScoreBreakdown:
    config = config or load_reconciliation_config()
    return ScoreBreakdown(
        amount=score_amount(line, transaction, config),
        date=score_date(line, transaction, config),
        description=score_description(line, transaction, config),
    )


# =============================================================================
# Selection
# =============================================================================


class MatchStatus(str, enum.Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    CONFLICT = "conflict"


class MatchStrategy(str, enum.Enum):
    """GREEDY picks each line's best candidate independently; EXCLUSIVE lets a
    transaction be claimed by one line only, highest confidence first."""

    GREEDY = "greedy"
    EXCLUSIVE = "exclusive"


@dataclass(frozen=True)
class MatchCandidate:
    """Proposed pairing of one statement line with zero or one transaction.

    For unmatched lines ``confidence`` and ``breakdown`` describe the best
    pair seen, which stayed below the threshold.
    """

    statement_line: StatementLine
    transaction: Transaction | None
    confidence: float
    status: MatchStatus
    breakdown: dict[str, float] = field(default_factory=dict)
    confirmed: bool = False

    @property
    def is_matched(self) -> bool:
        return self.status == MatchStatus.MATCHED and self.transaction is not None


def _candidate(
    line: StatementLine,
    transaction: Transaction | None,
    breakdown: ScoreBreakdown | None,
) -> MatchCandidate:
    return MatchCandidate(
        statement_line=line,
        transaction=transaction,
        confidence=round(float(breakdown.total), 4) if breakdown else 0.0,
        status=MatchStatus.MATCHED if transaction is not None else MatchStatus.UNMATCHED,
        breakdown=breakdown.as_dict() if breakdown else {},
    )


def _match_greedy(
    lines: Sequence[StatementLine],
    transactions: Sequence[Transaction],
    config: ReconciliationConfig,
) -> list[MatchCandidate]:
    candidates = []
    for line in lines:
        best_match: Transaction | None = None
        best_score: ScoreBreakdown | None = None
        best_seen: ScoreBreakdown | None = None

        for transaction in transactions:
            score = score_match(line, transaction, config)
            if best_seen is None or score.total > best_seen.total:
                best_seen = score
            # Strictly greater: the earliest candidate wins a tie.
            if score.total >= config.accept_threshold and (best_score is None or score.total > best_score.total):
                best_match = transaction
                best_score = score

        candidates.append(_candidate(line, best_match, best_score or best_seen))
    return candidates


def _match_exclusive(
    lines: Sequence[StatementLine],
    transactions: Sequence[Transaction],
    config: ReconciliationConfig,
) -> list[MatchCandidate]:
    scored: list[tuple[Decimal, int, int, ScoreBreakdown]] = []
    best_seen: dict[int, ScoreBreakdown] = {}

    for li, line in enumerate(lines):
        for ti, transaction in enumerate(transactions):
            score = score_match(line, transaction, config)
            if li not in best_seen or score.total > best_seen[li].total:
                best_seen[li] = score
            if score.total >= config.accept_threshold:
                scored.append((score.total, li, ti, score))

    scored.sort(key=lambda item: (-item[0], item[1], item[2]))
    assigned: dict[int, tuple[int, ScoreBreakdown]] = {}
    claimed: set[int] = set()
    for _, li, ti, score in scored:
        if li in assigned or ti in claimed:
            continue
        assigned[li] = (ti, score)
        claimed.add(ti)

    candidates = []
    for li, line in enumerate(lines):
        if li in assigned:
            ti, score = assigned[li]
            candidates.append(_candidate(line, transactions[ti], score))
        else:
            candidates.append(_candidate(line, None, best_seen.get(li)))
    return candidates


def match_statement(
    lines: Sequence[StatementLine],
    transactions: Sequence[Transaction],
    *,
    config: ReconciliationConfig | None = None,
    strategy: MatchStrategy = MatchStrategy.GREEDY,
) -> list[MatchCandidate]:
    """Return one candidate per statement line, in statement order."""
    config = config or load_reconciliation_config()
    if strategy == MatchStrategy.EXCLUSIVE:
        return _match_exclusive(lines, transactions, config)
    return _match_greedy(lines, transactions, config)


def find_conflicts(candidates: Sequence[MatchCandidate]) -> dict[UUID, list[str]]:
    """Map transaction id -> statement line ids for transactions claimed more than once."""
    claims: dict[UUID, list[str]] = defaultdict(list)
    for candidate in candidates:
        if candidate.is_matched:
            claims[candidate.transaction.id].append(candidate.statement_line.id)
    return {txn_id: line_ids for txn_id, line_ids in claims.items() if len(line_ids) > 1}


def mark_conflicts(candidates: Sequence[MatchCandidate]) -> list[MatchCandidate]:
    """Return candidates with every multiply-claimed match flagged as a conflict."""
    conflicts = find_conflicts(candidates)
    return [
        replace(c, status=MatchStatus.CONFLICT) if c.is_matched and c.transaction.id in conflicts else c
        for c in candidates
    ]


# =============================================================================
# Orchestration
# =============================================================================


async def load_open_transactions(
    repo: LedgerRepository,
    account_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[Transaction]:
    """Pending and overdue transactions of an account within the window."""
    return await repo.list_transactions(
        account_id=account_id,
        statuses=OPEN_STATUSES,
        start_date=start_date,
        end_date=end_date,
    )


@dataclass
class ReconciliationReport:
    candidates: list[MatchCandidate]
    statement: ParsedStatement
    conflicts: dict[UUID, list[str]]

    @property
    def matched_count(self) -> int:
        return sum(1 for c in self.candidates if c.status == MatchStatus.MATCHED)

    @property
    def unmatched_count(self) -> int:
        return sum(1 for c in self.candidates if c.status == MatchStatus.UNMATCHED)


def _shift_date(day: date, days: int) -> date:
    """Move ``day`` by ``days``, clamped to the representable calendar."""
    try:
        return day + timedelta(days=days)
    except OverflowError:
        return date.max if days > 0 else date.min


async def reconcile_statement(
    repo: LedgerRepository,
    account_id: UUID,
    content: str,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    strategy: MatchStrategy = MatchStrategy.GREEDY,
    flag_conflicts: bool = False,
) -> ReconciliationReport:
    """Parse a statement and match it against the account's open transactions.

    Without an explicit window the statement's own date range is used,
    widened by the furthest date tier.
    """
    config = load_reconciliation_config()
    statement = parse_statement(content)

    if statement.lines:
        start_date = start_date or _shift_date(min(line.date for line in statement.lines), -config.date_far_days)
        end_date = end_date or _shift_date(max(line.date for line in statement.lines), config.date_far_days)

    transactions = await load_open_transactions(repo, account_id, start_date, end_date)

    with log_timing(
        "match_statement",
        logger=logger,
        account_id=str(account_id),
        lines=len(statement.lines),
        transactions=len(transactions),
        strategy=strategy.value,
    ) as timing:
        candidates = match_statement(statement.lines, transactions, config=config, strategy=strategy)
        conflicts = find_conflicts(candidates)
        if flag_conflicts:
            candidates = mark_conflicts(candidates)
        timing["matched"] = sum(1 for c in candidates if c.status == MatchStatus.MATCHED)
        timing["conflicts"] = len(conflicts)

    return ReconciliationReport(candidates=candidates, statement=statement, conflicts=conflicts)
