"""
Lending Pool
============

Policy state machine for private collateralized lending.

Position lifecycle:

    empty -> deposited -> deposited+borrowed -> deposited -> empty
                          deposited+borrowed -> empty        (liquidation)

Every state-changing call runs as one transaction: accrue interest, check
policy, verify proofs, apply registry transitions. Any failure restores the
pool and registry to their state at entry and comes back as a failed
TxReceipt carrying the error kind.

Amounts: collateral in base units, debt in settlement units, price as
settlement units per collateral unit with 8 decimals.

Version: 0.1.0
"""

import copy
import hashlib
import time
import uuid
from collections.abc import Callable, Sequence
from typing import Any

from zklend.config import PoolSettings, get_settings
from zklend.errors import (
    MalformedInputError,
    PolicyViolationError,
    ProofInvalidError,
    StateConflictError,
    ZKLendError,
)
from zklend.logging import bind_context, clear_context, get_logger
from zklend.protocol.interest import RAY, InterestRateModel
from zklend.protocol.models import (
    CommitmentType,
    DebtBreakdown,
    PoolEvent,
    PoolEventType,
    PoolStatus,
    Position,
    TxReceipt,
)
from zklend.protocol.registry import CommitmentRegistry
from zklend.zk.field import is_canonical
from zklend.zk.models import ProofType, ZKProof
from zklend.zk.params import MAX_VALUE, PERCENT, PRICE_SCALE
from zklend.zk.poseidon import derive_nullifier
from zklend.zk.verifier import ProofVerifier


logger = get_logger(__name__)

PendingEvent = tuple[PoolEventType, str, dict[str, Any]]

DEFAULT_POOL_ADDRESS = "zklend:pool"


def _require_amount(name: str, amount: Any) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise MalformedInputError(f"{name} must be a positive integer")
    if amount > MAX_VALUE:
        raise MalformedInputError(f"{name} exceeds 2^64 - 1")
    return amount


def _require_element(name: str, value: Any) -> int:
    if not is_canonical(value) or value == 0:
        raise MalformedInputError(f"{name} must be a non-zero field element")
    return value


def _require_inputs(proof_type: ProofType, public_inputs: Sequence[int]) -> list[int]:
    if not isinstance(public_inputs, Sequence) or isinstance(public_inputs, str | bytes):
        raise MalformedInputError(f"{proof_type.value} public inputs must be a sequence")
    inputs = list(public_inputs)
    if len(inputs) != proof_type.public_input_count:
        raise MalformedInputError(
            f"{proof_type.value} proof takes {proof_type.public_input_count} public inputs, "
            f"got {len(inputs)}"
        )
    if not all(is_canonical(value) for value in inputs):
        raise MalformedInputError(f"{proof_type.value} public inputs must be field elements")
    return inputs


class LendingPool:
    """
    Lending pool driven by zero-knowledge collateral proofs.

    Usage:
        pool = LendingPool(verifier, registry, owner="0xowner")
        registry.set_authorized_caller("0xowner", pool.address)

        pool.supply_liquidity("0xowner", 1_000_000)
        receipt = pool.deposit("0xalice", 10, collateral_commitment)
    """

    def __init__(
        self,
        verifier: ProofVerifier,
        registry: CommitmentRegistry,
        owner: str,
        settings: PoolSettings | None = None,
        clock: Callable[[], int] | None = None,
        address: str = DEFAULT_POOL_ADDRESS,
    ) -> None:
        self.verifier = verifier
        self.registry = registry
        self.owner = owner
        self.address = address
        self.settings = settings or get_settings().pool
        self.rates = InterestRateModel.from_settings(self.settings)
        self._clock = clock or (lambda: int(time.time()))
        self._block_number = 1000

        self.price = self.settings.initial_price
        self.available_liquidity = 0
        self.total_borrowed = 0
        self.total_collateral = 0
        self.total_interest_collected = 0
        self.borrow_index = RAY
        self.last_accrual = self._clock()

        self._positions: dict[str, Position] = {}
        self._events: list[PoolEvent] = []

        logger.debug("lending_pool_initialized", owner=owner, address=address)

    # =========================================================================
    # Transactions
    # =========================================================================

    def _generate_tx_hash(self) -> str:
        return "0x" + hashlib.sha256(uuid.uuid4().bytes).hexdigest()

    def _next_block(self) -> int:
        self._block_number += 1
        return self._block_number

    def _snapshot(self) -> dict[str, Any]:
        return {
            "price": self.price,
            "available_liquidity": self.available_liquidity,
            "total_borrowed": self.total_borrowed,
            "total_collateral": self.total_collateral,
            "total_interest_collected": self.total_interest_collected,
            "borrow_index": self.borrow_index,
            "last_accrual": self.last_accrual,
            "_positions": copy.deepcopy(self._positions),
        }

    def _restore(self, snapshot: dict[str, Any]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)

    def _execute(
        self,
        action: str,
        sender: str,
        operation: Callable[[int], list[PendingEvent]],
    ) -> TxReceipt:
        """Run an operation all-or-nothing and describe the result."""
        pool_state = self._snapshot()
        registry_state = self.registry.snapshot()
        now = self._clock()
        tx_hash = self._generate_tx_hash()
        block_number = self._next_block()

        bind_context(tx_hash=tx_hash, action=action, sender=sender)
        try:
            pending = operation(now)
        except ZKLendError as exc:
            self._restore(pool_state)
            self.registry.restore(registry_state)
            logger.warning("pool_transaction_reverted", error_kind=exc.kind.value, reason=exc.reason)
            return TxReceipt(
                ok=False,
                action=action,
                sender=sender,
                tx_hash=tx_hash,
                block_number=block_number,
                timestamp=now,
                error_kind=exc.kind,
                reason=exc.reason,
            )
        finally:
            clear_context()

        events = [
            PoolEvent(
                event_type=event_type,
                user=user,
                timestamp=now,
                tx_hash=tx_hash,
                block_number=block_number,
                data=data,
            )
            for event_type, user, data in pending
        ]
        self._events.extend(events)
        for event in events:
            logger.info(event.event_type.value, user=event.user, tx_hash=tx_hash, **event.data)

        return TxReceipt(
            ok=True,
            action=action,
            sender=sender,
            tx_hash=tx_hash,
            block_number=block_number,
            timestamp=now,
            events=events,
        )

    def _registry(self, outcome_call: Callable[..., Any], *args: Any) -> None:
        """Apply a registry transition, turning a failed outcome into a revert."""
        outcome = outcome_call(*args, caller=self.address)
        if not outcome.ok:
            raise ZKLendError(outcome.reason or "Registry transition failed", outcome.error_kind)

    def _verify(self, proof_type: ProofType, proof: ZKProof, public_inputs: list[int]) -> None:
        if not self.verifier.verify(proof_type, proof, public_inputs):
            raise ProofInvalidError(f"{proof_type.value} proof did not verify")

    def _require_owner(self, sender: str) -> None:
        if sender != self.owner:
            raise PolicyViolationError("Only the pool owner can perform this action")

    # =========================================================================
    # Interest
    # =========================================================================

    def _index_at(self, now: int) -> int:
        if self.total_borrowed == 0:
            return self.borrow_index
        rate = self.rates.borrow_rate(self.get_utilization_rate())
        return self.rates.accrue(self.borrow_index, rate, now - self.last_accrual)

    def _accrue(self, now: int) -> None:
        self.borrow_index = self._index_at(now)
        self.last_accrual = max(self.last_accrual, now)

    def _debt_of(self, position: Position, index: int) -> DebtBreakdown:
        if not position.has_borrow or position.index_snapshot == 0:
            return DebtBreakdown(principal=0, interest=0, total=0)
        total = position.debt_snapshot * index // position.index_snapshot
        principal = position.borrowed_amount
        return DebtBreakdown(principal=principal, interest=max(0, total - principal), total=total)

    def required_collateral(self, amount: int) -> int:
        """Smallest collateral threshold that supports borrowing amount at max LTV."""
        numerator = amount * PERCENT * PRICE_SCALE
        denominator = self.settings.max_ltv * self.price
        return -(-numerator // denominator)

    # =========================================================================
    # Owner operations
    # =========================================================================

    def supply_liquidity(self, sender: str, amount: int) -> TxReceipt:
        def operation(now: int) -> list[PendingEvent]:
            self._accrue(now)
            self._require_owner(sender)
            _require_amount("amount", amount)
            self.available_liquidity += amount
            return [(PoolEventType.LIQUIDITY_SUPPLIED, sender, {"amount": amount})]

        return self._execute("supply_liquidity", sender, operation)

    def update_price(self, sender: str, price: int) -> TxReceipt:
        def operation(now: int) -> list[PendingEvent]:
            self._accrue(now)
            self._require_owner(sender)
            _require_amount("price", price)
            previous, self.price = self.price, price
            return [(PoolEventType.PRICE_UPDATED, sender, {"price": price, "previous": previous})]

        return self._execute("update_price", sender, operation)

    # =========================================================================
    # User operations
    # =========================================================================

    def deposit(self, sender: str, amount: int, commitment: int) -> TxReceipt:
        """Lock collateral behind a commitment to its amount."""

        def operation(now: int) -> list[PendingEvent]:
            self._accrue(now)
            _require_amount("amount", amount)
            _require_element("commitment", commitment)
            position = self._positions.get(sender)
            if position is not None and position.has_deposit:
                raise StateConflictError("Position already has a deposit")

            self._registry(self.registry.register, commitment, CommitmentType.COLLATERAL, sender)
            self._positions[sender] = Position(
                owner=sender,
                has_deposit=True,
                collateral_commitment=commitment,
                collateral_amount=amount,
                deposited_at=now,
                updated_at=now,
            )
            self.total_collateral += amount
            return [(PoolEventType.DEPOSITED, sender, {"amount": amount})]

        return self._execute("deposit", sender, operation)

    def borrow(
        self,
        sender: str,
        amount: int,
        debt_commitment: int,
        position_commitment: int,
        collateral_proof: ZKProof,
        collateral_inputs: Sequence[int],
        ltv_proof: ZKProof,
        ltv_inputs: Sequence[int],
    ) -> TxReceipt:
        """
        Borrow against a deposit.

        The collateral proof must show the committed collateral covers the
        amount at the current price and max LTV; the LTV proof must tie the
        new debt commitment to the same collateral commitment.
        """

        def operation(now: int) -> list[PendingEvent]:
            self._accrue(now)
            _require_amount("amount", amount)
            _require_element("debt_commitment", debt_commitment)
            _require_element("position_commitment", position_commitment)
            collateral_public = _require_inputs(ProofType.COLLATERAL, collateral_inputs)
            ltv_public = _require_inputs(ProofType.LTV, ltv_inputs)

            position = self._positions.get(sender)
            if position is None or not position.has_deposit:
                raise PolicyViolationError("No collateral deposited")
            if position.has_borrow:
                raise StateConflictError("Position already has an open borrow")
            if amount > self.available_liquidity:
                raise PolicyViolationError("Insufficient pool liquidity")

            threshold, collateral_commitment = collateral_public
            if collateral_commitment != position.collateral_commitment:
                raise PolicyViolationError("Collateral proof is not about this position")
            required = self.required_collateral(amount)
            if position.collateral_amount < required:
                raise PolicyViolationError("Deposited collateral does not cover the borrow amount")
            if threshold < required:
                raise PolicyViolationError("Proven collateral does not cover the borrow amount")
            if ltv_public != [
                self.settings.max_ltv,
                position.collateral_commitment,
                debt_commitment,
            ]:
                raise PolicyViolationError("LTV proof does not match pool policy or position")

            self._verify(ProofType.COLLATERAL, collateral_proof, collateral_public)
            self._verify(ProofType.LTV, ltv_proof, ltv_public)

            self._registry(self.registry.register, debt_commitment, CommitmentType.DEBT, sender)
            self._registry(
                self.registry.register, position_commitment, CommitmentType.POSITION, sender
            )

            position.has_borrow = True
            position.debt_commitment = debt_commitment
            position.position_commitment = position_commitment
            position.borrowed_amount = amount
            position.debt_snapshot = amount
            position.index_snapshot = self.borrow_index
            position.borrowed_at = now
            position.updated_at = now

            self.total_borrowed += amount
            self.available_liquidity -= amount
            return [(PoolEventType.BORROWED, sender, {"amount": amount})]

        return self._execute("borrow", sender, operation)

    def _settle(self, sender: str, amount: int, now: int) -> tuple[Position, DebtBreakdown, int, int]:
        """Apply a payment to a debt, interest first."""
        position = self._positions.get(sender)
        if position is None or not position.has_borrow:
            raise PolicyViolationError("No outstanding debt")
        debt = self._debt_of(position, self.borrow_index)
        paid = min(amount, debt.total)
        interest_paid = min(paid, debt.interest)
        principal_paid = paid - interest_paid

        position.borrowed_amount -= principal_paid
        position.debt_snapshot = debt.total - paid
        position.index_snapshot = self.borrow_index
        position.updated_at = now

        self.total_borrowed -= principal_paid
        self.available_liquidity += paid
        self.total_interest_collected += interest_paid
        return position, debt, interest_paid, principal_paid

    def repay(
        self,
        sender: str,
        amount: int,
        nullifier: int | None = None,
        new_debt_commitment: int | None = None,
        new_position_commitment: int | None = None,
    ) -> TxReceipt:
        """
        Repay debt, interest first.

        Paying off everything retires the debt and position commitments.
        Paying down principal replaces both with fresh commitments to the
        reduced debt. Paying only interest leaves commitments untouched.
        """

        def operation(now: int) -> list[PendingEvent]:
            self._accrue(now)
            _require_amount("amount", amount)
            position, debt, interest_paid, principal_paid = self._settle(sender, amount, now)

            if position.debt_snapshot == 0:
                base = _require_element("nullifier", nullifier)
                self._registry(
                    self.registry.nullify, position.debt_commitment, derive_nullifier(base, 1)
                )
                self._registry(
                    self.registry.nullify, position.position_commitment, derive_nullifier(base, 2)
                )
                position.has_borrow = False
                position.debt_commitment = None
                position.position_commitment = None
                position.borrowed_amount = 0
                position.index_snapshot = 0
                position.borrowed_at = None
            elif principal_paid > 0:
                base = _require_element("nullifier", nullifier)
                new_debt = _require_element("new_debt_commitment", new_debt_commitment)
                new_position = _require_element("new_position_commitment", new_position_commitment)
                self._registry(
                    self.registry.update, position.debt_commitment, new_debt, derive_nullifier(base, 1)
                )
                self._registry(
                    self.registry.update,
                    position.position_commitment,
                    new_position,
                    derive_nullifier(base, 2),
                )
                position.debt_commitment = new_debt
                position.position_commitment = new_position

            return [
                (
                    PoolEventType.REPAID,
                    sender,
                    {
                        "amount": interest_paid + principal_paid,
                        "interest": interest_paid,
                        "principal": principal_paid,
                        "remaining": position.debt_snapshot,
                    },
                )
            ]

        return self._execute("repay", sender, operation)

    def pay_interest(self, sender: str) -> TxReceipt:
        """Pay exactly the interest accrued so far."""

        def operation(now: int) -> list[PendingEvent]:
            self._accrue(now)
            position = self._positions.get(sender)
            if position is None or not position.has_borrow:
                raise PolicyViolationError("No outstanding debt")
            interest = self._debt_of(position, self.borrow_index).interest
            if interest == 0:
                raise PolicyViolationError("No interest due")
            self._settle(sender, interest, now)
            return [(PoolEventType.INTEREST_PAID, sender, {"amount": interest})]

        return self._execute("pay_interest", sender, operation)

    def withdraw(
        self,
        sender: str,
        amount: int,
        nullifier: int,
        proof: ZKProof,
        public_inputs: Sequence[int],
    ) -> TxReceipt:
        """
        Withdraw collateral and close the position.

        The collateral proof must show the committed amount is at least the
        amount withdrawn, which may not exceed the deposit. The whole deposit
        is released. Debt must be fully repaid first.
        """

        def operation(now: int) -> list[PendingEvent]:
            self._accrue(now)
            _require_amount("amount", amount)
            _require_element("nullifier", nullifier)
            inputs = _require_inputs(ProofType.COLLATERAL, public_inputs)

            position = self._positions.get(sender)
            if position is None or not position.has_deposit:
                raise PolicyViolationError("No collateral deposited")
            if position.has_borrow:
                raise PolicyViolationError("Repay all debt before withdrawing")
            if inputs != [amount, position.collateral_commitment]:
                raise PolicyViolationError("Collateral proof does not match the withdrawal")
            if amount > position.collateral_amount:
                raise PolicyViolationError("Withdrawal exceeds the deposited collateral")

            self._verify(ProofType.COLLATERAL, proof, inputs)
            self._registry(self.registry.nullify, position.collateral_commitment, nullifier)

            del self._positions[sender]
            self.total_collateral -= position.collateral_amount
            return [(PoolEventType.WITHDRAWN, sender, {"amount": position.collateral_amount})]

        return self._execute("withdraw", sender, operation)

    def liquidate(
        self,
        sender: str,
        user: str,
        nullifier: int,
        proof: ZKProof,
        public_inputs: Sequence[int],
    ) -> TxReceipt:
        """
        Close an unhealthy position on behalf of a third party.

        The liquidation proof must be for the pool's current price and
        liquidation threshold and for the position's registered hash. The
        liquidator repays the full debt and takes over the collateral claim.
        """

        def operation(now: int) -> list[PendingEvent]:
            self._accrue(now)
            base = _require_element("nullifier", nullifier)
            inputs = _require_inputs(ProofType.LIQUIDATION, public_inputs)

            if sender == user:
                raise PolicyViolationError("Cannot liquidate own position")
            position = self._positions.get(user)
            if position is None or not position.has_borrow:
                raise PolicyViolationError("Position has no debt to liquidate")
            if inputs != [
                self.price,
                self.settings.liquidation_threshold,
                position.position_commitment,
            ]:
                raise PolicyViolationError("Liquidation proof does not match price, threshold or position")

            self._verify(ProofType.LIQUIDATION, proof, inputs)

            debt = self._debt_of(position, self.borrow_index)
            for index, commitment in enumerate(
                (position.debt_commitment, position.position_commitment, position.collateral_commitment),
                start=1,
            ):
                self._registry(self.registry.nullify, commitment, derive_nullifier(base, index))

            self.total_borrowed -= debt.principal
            self.available_liquidity += debt.total
            self.total_interest_collected += debt.interest
            self.total_collateral -= position.collateral_amount
            del self._positions[user]

            return [
                (
                    PoolEventType.LIQUIDATED,
                    user,
                    {
                        "liquidator": sender,
                        "debt_repaid": debt.total,
                        "collateral": position.collateral_amount,
                        "collateral_commitment": hex(position.collateral_commitment or 0),
                    },
                )
            ]

        return self._execute("liquidate", sender, operation)

    # =========================================================================
    # Views
    # =========================================================================

    def get_position(self, user: str) -> Position:
        position = self._positions.get(user)
        return position.model_copy() if position is not None else Position(owner=user)

    def get_current_debt(self, user: str) -> DebtBreakdown:
        """Principal, accrued interest and total owed as of now."""
        position = self._positions.get(user)
        if position is None:
            return DebtBreakdown(principal=0, interest=0, total=0)
        return self._debt_of(position, self._index_at(self._clock()))

    def get_utilization_rate(self) -> int:
        return self.rates.utilization(self.total_borrowed, self.available_liquidity)

    def get_current_interest_rate(self) -> int:
        """Annual borrow rate in basis points."""
        return self.rates.borrow_rate(self.get_utilization_rate())

    def estimate_interest(self, amount: int, duration: int) -> int:
        """Interest on amount over duration seconds at the current rate."""
        return self.rates.simple_interest(amount, self.get_current_interest_rate(), duration)

    def get_pool_status(self) -> PoolStatus:
        return PoolStatus(
            available_liquidity=self.available_liquidity,
            total_borrowed=self.total_borrowed,
            total_collateral=self.total_collateral,
            total_interest_collected=self.total_interest_collected,
            utilization_rate=self.get_utilization_rate(),
            interest_rate_bps=self.get_current_interest_rate(),
            borrow_index=self._index_at(self._clock()),
            price=self.price,
            open_positions=len(self._positions),
        )

    @property
    def events(self) -> list[PoolEvent]:
        return list(self._events)

    def get_user_events(self, user: str) -> list[PoolEvent]:
        return [event for event in self._events if event.user == user]


def deploy(
    verifier: ProofVerifier,
    owner: str,
    settings: PoolSettings | None = None,
    clock: Callable[[], int] | None = None,
) -> LendingPool:
    """Create a registry and a pool, and authorize the pool in the registry."""
    registry = CommitmentRegistry(owner=owner)
    pool = LendingPool(verifier, registry, owner=owner, settings=settings, clock=clock)
    outcome = registry.set_authorized_caller(owner, pool.address)
    if not outcome.ok:
        raise RuntimeError(f"Could not authorize pool: {outcome.reason}")
    return pool
