"""
PerpetualManager: the per-account position state machine.

States per account: NONE (absent from ``positions``) and OPEN.

    open_position   NONE -> OPEN   ("Position exists" otherwise)
    close_position  OPEN -> NONE   ("No position" otherwise)
    liquidate       any  -> NONE   (owner-only; seizes the Vault balance)

``size = margin * leverage`` with ``min_leverage <= leverage <= max_leverage``.
The entry price is the wired oracle's price at call time, or 0 when no
oracle is wired.

Collateral moves only through the Vault, with this manager as the Vault's
authorized caller. Calls go from the manager to the Vault, FeeManager and
InsuranceFund and never back, and the manager lock is always taken first.

With ``escrow_margin`` off (the default) opening and closing move no funds:
margin is assumed to be deposited already. With it on, the manager settles:

- open withdraws ``margin + fee`` from the account's Vault balance; the
  margin is held in ``reserved_margin`` and the fee goes to the FeeManager,
- close realizes PnL against the oracle price, charges the closing fee and
  deposits what is left back into the Vault; a loss beyond the margin is
  reported as ``bad_debt``,
- liquidate releases the reserved margin back into the Vault at its
  remaining value (margin + PnL, floored at 0) before seizing the balance;
  the seized amount goes to the InsuranceFund when one is wired.

Fees are ``margin * rate // 10000`` with the rate in basis points, read from
the Governance ``tradingFeeRate`` parameter. The rate is 0 when unset, or
when Governance or the FeeManager is not wired. A rejection by any
downstream ledger rejects the whole call.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Optional

from .auth import AuthorizationContext, canonical_address, require_owner
from .governance import parameter_key
from .guards import check_address, check_amount, check_leverage, check_value
from .ledger import Ledger
from .state import ManagerState
from .types import (
    EMPTY_POSITION,
    Account,
    Address,
    ErrorKind,
    Event,
    LedgerResult,
    Position,
    REASON_INVALID_VALUE,
    REASON_NO_POSITION,
    REASON_POSITION_EXISTS,
    accepted,
    rejected,
)

if TYPE_CHECKING:
    from .fees import FeeManager
    from .governance import Governance
    from .insurance import InsuranceFund
    from .oracle import PriceOracle
    from .vault import Vault


FEE_RATE_DENOMINATOR = 10_000
TRADING_FEE_RATE = "tradingFeeRate"
TRADING_FEE_RATE_KEY = parameter_key(TRADING_FEE_RATE)


def _div_trunc(n: int, d: int) -> int:
    q = abs(n) // d
    return q if n >= 0 else -q


def realized_pnl(position: Position, mark_price: int) -> int:
    """Signed PnL of ``position`` at ``mark_price``, rounded toward zero.

    ``size * (mark - entry) / entry`` for longs, sign flipped for shorts.
    A position without an entry price has no PnL.
    """
    if position.entry_price <= 0:
        return 0
    diff = mark_price - position.entry_price
    if not position.is_long:
        diff = -diff
    return _div_trunc(position.size * diff, position.entry_price)


def trading_fee(margin: int, fee_rate: int) -> int:
    return margin * fee_rate // FEE_RATE_DENOMINATOR


def _check_fee_rate(fee_rate: object) -> Optional[str]:
    if check_value(fee_rate) is not None or not 0 <= fee_rate <= FEE_RATE_DENOMINATOR:  # type: ignore[operator]
        return REASON_INVALID_VALUE
    return None


def apply_open_position(
    state: ManagerState,
    account: Account,
    is_long: bool,
    margin: int,
    leverage: int,
    entry_price: int,
    fee_rate: int = 0,
) -> LedgerResult:
    reason = (
        check_address(account)
        or (None if isinstance(is_long, bool) else REASON_INVALID_VALUE)
        or check_amount(margin, positive=True)
        or check_leverage(leverage, min_leverage=state.min_leverage, max_leverage=state.max_leverage)
        or _check_fee_rate(fee_rate)
    )
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)

    account = canonical_address(account)
    if account in state.positions:
        return rejected(ErrorKind.STATE, REASON_POSITION_EXISTS)

    position = Position(
        margin=margin,
        size=margin * leverage,
        is_long=is_long,
        entry_price=entry_price,
        leverage=leverage,
    )
    positions = dict(state.positions)
    positions[account] = position
    fee = 0
    reserved = state.reserved_margin
    if state.escrow_margin:
        fee = trading_fee(margin, fee_rate)
        reserved += margin
    return accepted(
        replace(state, positions=positions, reserved_margin=reserved),
        Event.POSITION_OPENED,
        value=position,
        account=account,
        size=position.size,
        entry_price=entry_price,
        fee=fee,
    )


def apply_close_position(
    state: ManagerState,
    account: Account,
    mark_price: int = 0,
    fee_rate: int = 0,
) -> LedgerResult:
    reason = check_address(account) or _check_fee_rate(fee_rate)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)

    account = canonical_address(account)
    position = state.positions.get(account)
    if position is None:
        return rejected(ErrorKind.STATE, REASON_NO_POSITION)

    positions = dict(state.positions)
    del positions[account]
    pnl = fee = payout = bad_debt = 0
    reserved = state.reserved_margin
    if state.escrow_margin:
        pnl = realized_pnl(position, mark_price)
        value = position.margin + pnl
        fee = min(trading_fee(position.margin, fee_rate), max(value, 0))
        payout = max(value - fee, 0)
        bad_debt = max(-value, 0)
        reserved -= position.margin
    return accepted(
        replace(state, positions=positions, reserved_margin=reserved),
        Event.POSITION_CLOSED,
        value=position,
        account=account,
        margin=position.margin,
        pnl=pnl,
        fee=fee,
        payout=payout,
        bad_debt=bad_debt,
    )


def apply_liquidate(state: ManagerState, caller: Address, account: Account, mark_price: int = 0) -> LedgerResult:
    reason = require_owner(state.auth, caller)
    if reason is not None:
        return rejected(ErrorKind.AUTHORIZATION, reason)
    reason = check_address(account)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)

    account = canonical_address(account)
    position = state.positions.get(account, EMPTY_POSITION)
    positions = dict(state.positions)
    positions.pop(account, None)
    escrowed = pnl = remaining = 0
    reserved = state.reserved_margin
    if state.escrow_margin and position.is_open:
        escrowed = position.margin
        pnl = realized_pnl(position, mark_price)
        remaining = max(position.margin + pnl, 0)
        reserved -= position.margin
    return accepted(
        replace(state, positions=positions, reserved_margin=reserved),
        Event.POSITION_LIQUIDATED,
        value=position,
        account=account,
        margin=position.margin,
        escrowed=escrowed,
        pnl=pnl,
        remaining=remaining,
    )


class PerpetualManager(Ledger[ManagerState]):
    kind = "PerpetualManager"

    def __init__(
        self,
        auth: AuthorizationContext,
        *,
        address: Address,
        vault: "Vault",
        oracle: Optional["PriceOracle"] = None,
        fee_manager: Optional["FeeManager"] = None,
        insurance_fund: Optional["InsuranceFund"] = None,
        governance: Optional["Governance"] = None,
        min_leverage: int = 1,
        max_leverage: int = 10,
        escrow_margin: bool = False,
    ) -> None:
        if not 1 <= min_leverage <= max_leverage:
            raise ValueError(f"invalid leverage bounds: [{min_leverage}, {max_leverage}]")
        # Fees and insurance contributions are booked under this manager's owner.
        for ledger in (fee_manager, insurance_fund):
            if ledger is not None and ledger.owner != auth.owner:
                raise ValueError(f"{ledger.kind} {ledger.address} is not owned by {auth.owner}")
        self._vault = vault
        self._oracle = oracle
        self._fee_manager = fee_manager
        self._insurance_fund = insurance_fund
        self._governance = governance
        super().__init__(
            ManagerState(
                auth=auth,
                vault=vault.address,
                min_leverage=min_leverage,
                max_leverage=max_leverage,
                escrow_margin=escrow_margin,
            ),
            address=address,
        )

    @property
    def vault(self) -> "Vault":
        return self._vault

    @property
    def oracle(self) -> Optional["PriceOracle"]:
        return self._oracle

    @property
    def fee_manager(self) -> Optional["FeeManager"]:
        return self._fee_manager

    @property
    def insurance_fund(self) -> Optional["InsuranceFund"]:
        return self._insurance_fund

    @property
    def governance(self) -> Optional["Governance"]:
        return self._governance

    @property
    def escrow_margin(self) -> bool:
        return self._state.escrow_margin

    @property
    def reserved_margin(self) -> int:
        return self._state.reserved_margin

    @property
    def min_leverage(self) -> int:
        return self._state.min_leverage

    @property
    def max_leverage(self) -> int:
        return self._state.max_leverage

    def _mark_price(self) -> int:
        return self._oracle.get_price() if self._oracle is not None else 0

    def fee_rate(self) -> int:
        """Trading fee rate in basis points; 0 unless fees can be booked."""
        if not self.escrow_margin or self._governance is None or self._fee_manager is None:
            return 0
        return self._governance.get_parameter(TRADING_FEE_RATE_KEY)

    # -- positions ---------------------------------------------------------

    def open_position(
        self,
        caller: Address,
        account: Account,
        is_long: bool,
        margin: int,
        leverage: int,
    ) -> LedgerResult:
        self._logger.debug("open_position requested by %s for %s", caller, account)
        with self._lock:
            hook = self._settle_open if self.escrow_margin else None
            return self._apply(
                "open_position",
                apply_open_position,
                account, is_long, margin, leverage, self._mark_price(), self.fee_rate(),
                before_commit=hook,
            )

    def close_position(self, caller: Address, account: Account) -> LedgerResult:
        self._logger.debug("close_position requested by %s for %s", caller, account)
        with self._lock:
            hook = self._settle_close if self.escrow_margin else None
            return self._apply(
                "close_position",
                apply_close_position,
                account, self._mark_price(), self.fee_rate(),
                before_commit=hook,
            )

    def liquidate(self, caller: Address, account: Account) -> LedgerResult:
        """Operator action: drop the account's position and seize its collateral."""
        proceeds: dict[str, int] = {}

        def _seize(result: LedgerResult) -> Optional[LedgerResult]:
            acct = result.effects["account"]
            remaining = result.effects["remaining"]
            if remaining > 0:
                res = self._vault.deposit(self.address, acct, remaining)
                if not res.ok:
                    return res
            res = self._vault.liquidate(self.address, acct)
            if not res.ok:
                if remaining > 0:
                    self._vault.withdraw(self.address, acct, remaining)
                return res
            seized = res.effects["seized"]
            insured = 0
            if self.escrow_margin and self._insurance_fund is not None and seized > 0:
                res = self._insurance_fund.deposit(self.owner, seized)
                if not res.ok:
                    self._restore(acct, seized - remaining)
                    return res
                insured = seized
            proceeds.update(seized=seized, insurance=insured)
            return None

        with self._lock:
            result = self._apply(
                "liquidate", apply_liquidate, caller, account, self._mark_price(), before_commit=_seize,
            )
        if not result.ok:
            return result
        return replace(result, effects={**result.effects, **proceeds})

    def get_position(self, account: Account) -> Position:
        return self._state.positions.get(canonical_address(account, name="account"), EMPTY_POSITION)

    def has_position(self, account: Account) -> bool:
        return self.get_position(account).is_open

    def open_interest(self) -> tuple[int, int]:
        """Total (long, short) notional size across open positions."""
        longs = shorts = 0
        for p in self._state.positions.values():
            if p.is_long:
                longs += p.size
            else:
                shorts += p.size
        return longs, shorts

    # -- collateral pass-through -------------------------------------------

    def deposit(self, caller: Address, amount: int) -> LedgerResult:
        """Credit ``amount`` to the caller's own Vault balance."""
        with self._lock:
            return self._vault.deposit(self.address, caller, amount)

    def withdraw(self, caller: Address, amount: int) -> LedgerResult:
        """Debit ``amount`` from the caller's own Vault balance."""
        with self._lock:
            return self._vault.withdraw(self.address, caller, amount)

    def get_collateral(self, account: Account) -> int:
        return self._vault.get_collateral(account)

    # -- settlement hooks --------------------------------------------------

    def _restore(self, account: Account, amount: int) -> None:
        if amount > 0:
            self._vault.deposit(self.address, account, amount)

    def _book_fee(self, account: Account, fee: int) -> Optional[LedgerResult]:
        if fee == 0:
            return None
        res = self._fee_manager.collect_fee(self.owner, account, fee)  # type: ignore[union-attr]
        return None if res.ok else res

    def _settle_open(self, result: LedgerResult) -> Optional[LedgerResult]:
        account = result.effects["account"]
        debit = result.value.margin + result.effects["fee"]
        res = self._vault.withdraw(self.address, account, debit)
        if not res.ok:
            return res
        blocked = self._book_fee(account, result.effects["fee"])
        if blocked is not None:
            self._restore(account, debit)
        return blocked

    def _settle_close(self, result: LedgerResult) -> Optional[LedgerResult]:
        account = result.effects["account"]
        payout = result.effects["payout"]
        if payout > 0:
            res = self._vault.deposit(self.address, account, payout)
            if not res.ok:
                return res
        blocked = self._book_fee(account, result.effects["fee"])
        if blocked is not None:
            if payout > 0:
                self._vault.withdraw(self.address, account, payout)
            return blocked
        if result.effects["bad_debt"] > 0:
            self._logger.warning(
                "PerpetualManager %s closed %s with bad debt %d",
                self.address, account, result.effects["bad_debt"],
            )
        return None
