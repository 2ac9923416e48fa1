"""Invariant checkers for the ledger snapshots.

Each function returns True when the invariant holds. ``check_all(state)``
returns the violated invariant IDs for the snapshot's type (empty = all
pass); ledgers run it on every candidate post-state before committing.
"""

from __future__ import annotations

from typing import Any, Callable

from .state import (
    FeeState,
    FundingState,
    GovernanceState,
    InsuranceState,
    ManagerState,
    OracleState,
    VaultState,
)


def inv_fees_nonneg(s: FeeState) -> bool:
    return s.collected_fees >= 0 and all(v >= 0 for v in s.fees_by_payer.values())


def inv_fees_attributed(s: FeeState) -> bool:
    return sum(s.fees_by_payer.values()) == s.collected_fees


def inv_funding_nonneg(s: FundingState) -> bool:
    return all(v >= 0 for v in s.payments.values())


def inv_insurance_nonneg(s: InsuranceState) -> bool:
    return s.balance >= 0


def inv_insurance_conservation(s: InsuranceState) -> bool:
    return s.balance == s.total_deposited - s.claims_paid


def inv_oracle_timestamp_nonneg(s: OracleState) -> bool:
    return s.updated_at >= 0


def inv_governance_values_int(s: GovernanceState) -> bool:
    return all(isinstance(v, int) and not isinstance(v, bool) for v in s.parameters.values())


def inv_vault_nonneg(s: VaultState) -> bool:
    return all(v >= 0 for v in s.balances.values())


def inv_vault_sparse(s: VaultState) -> bool:
    return all(v != 0 for v in s.balances.values())


def inv_leverage_bounds_ordered(s: ManagerState) -> bool:
    return 1 <= s.min_leverage <= s.max_leverage


def inv_positions_open(s: ManagerState) -> bool:
    return all(p.margin > 0 for p in s.positions.values())


def inv_size_eq_margin_times_leverage(s: ManagerState) -> bool:
    return all(p.size == p.margin * p.leverage for p in s.positions.values())


def inv_leverage_in_bounds(s: ManagerState) -> bool:
    return all(s.min_leverage <= p.leverage <= s.max_leverage for p in s.positions.values())


def inv_reserved_margin(s: ManagerState) -> bool:
    expected = sum(p.margin for p in s.positions.values()) if s.escrow_margin else 0
    return s.reserved_margin == expected


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[type, dict[str, Callable[[Any], bool]]] = {
    OracleState: {
        "inv_oracle_timestamp_nonneg": inv_oracle_timestamp_nonneg,
    },
    FeeState: {
        "inv_fees_nonneg": inv_fees_nonneg,
        "inv_fees_attributed": inv_fees_attributed,
    },
    FundingState: {
        "inv_funding_nonneg": inv_funding_nonneg,
    },
    InsuranceState: {
        "inv_insurance_nonneg": inv_insurance_nonneg,
        "inv_insurance_conservation": inv_insurance_conservation,
    },
    GovernanceState: {
        "inv_governance_values_int": inv_governance_values_int,
    },
    VaultState: {
        "inv_vault_nonneg": inv_vault_nonneg,
        "inv_vault_sparse": inv_vault_sparse,
    },
    ManagerState: {
        "inv_leverage_bounds_ordered": inv_leverage_bounds_ordered,
        "inv_positions_open": inv_positions_open,
        "inv_size_eq_margin_times_leverage": inv_size_eq_margin_times_leverage,
        "inv_leverage_in_bounds": inv_leverage_in_bounds,
        "inv_reserved_margin": inv_reserved_margin,
    },
}


def check_all(state: Any) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    checks = INVARIANT_REGISTRY.get(type(state), {})
    return [inv_id for inv_id, check_fn in checks.items() if not check_fn(state)]
