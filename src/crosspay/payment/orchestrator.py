"""
Payment orchestrator.

Drives one PaymentAttempt through the settlement state machine:

    IDLE -> ROUTING -> (APPROVING) -> SETTLING -> CONFIRMING_SETTLEMENT -> DONE

with FAILED reachable from every non-terminal state. Each step suspends on
the wallet (signature) or the chain (receipt) and the next step only runs
once the previous one has resolved.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import TYPE_CHECKING

from crosspay.core.exceptions import (
    AttemptCancelledError,
    ChainReadError,
    CrossPayError,
    InvalidStateTransitionError,
    NetworkSwitchError,
    TransactionFailedError,
    UserRejectedError,
)
from crosspay.core.logging import get_logger
from crosspay.core.types import (
    AttemptStep,
    ConfirmationOutcome,
    OrchestratorState,
    PaymentAttempt,
    SettlementPlan,
    SettlementPreference,
    TransactionRequest,
    utcnow,
)
from crosspay.payment.wallet import WalletRejectedError, WalletSession
from crosspay.settlement.plan import SettlementPlanBuilder, validate_settlement_transaction
from crosspay.settlement.provider import SettlementBuildRequest, SettlementProviderClient
from crosspay.settlement.quote import QuoteResolver
from crosspay.utils.amounts import require_positive_amount

if TYPE_CHECKING:
    from crosspay.core.config import Config
    from crosspay.requests.service import PaymentRequestService

logger = get_logger("payment.orchestrator")

CompletionListener = Callable[[PaymentAttempt], Awaitable[None]]

_S = OrchestratorState

ALLOWED_TRANSITIONS: dict[OrchestratorState, frozenset[OrchestratorState]] = {
    _S.IDLE: frozenset({_S.ROUTING, _S.FAILED}),
    _S.ROUTING: frozenset({_S.APPROVING, _S.SETTLING, _S.FAILED}),
    _S.APPROVING: frozenset({_S.SETTLING, _S.FAILED}),
    _S.SETTLING: frozenset({_S.CONFIRMING_SETTLEMENT, _S.FAILED}),
    _S.CONFIRMING_SETTLEMENT: frozenset({_S.DONE, _S.FAILED}),
    _S.DONE: frozenset(),
    # FAILED -> DONE only for a settlement whose confirmation arrives late
    _S.FAILED: frozenset({_S.IDLE, _S.DONE}),
}


class PaymentOrchestrator:
    """
    Executes settlement plans against a payer's wallet.

    One orchestrator serves any number of independent attempts. Attempts
    share nothing but the read-only registry, so they may run concurrently.

    Example:
        >>> attempt = await orchestrator.pay(
        ...     session,
        ...     receiver_identity="alice",
        ...     preference=SettlementPreference(137, "USDC", "0x..."),
        ...     amount="25",
        ...     source_network_id=1,
        ...     source_asset="USDC",
        ... )
        >>> attempt.state
        <OrchestratorState.DONE: 'done'>
    """

    def __init__(
        self,
        config: Config,
        quote_resolver: QuoteResolver,
        plan_builder: SettlementPlanBuilder,
        provider: SettlementProviderClient,
        requests: PaymentRequestService | None = None,
    ) -> None:
        self._config = config
        self._quotes = quote_resolver
        self._plans = plan_builder
        self._provider = provider
        self._requests = requests
        self._active: dict[str, PaymentAttempt] = {}
        self._cancel_events: dict[str, asyncio.Event] = {}
        self._listeners: list[CompletionListener] = []

    def add_completion_listener(self, listener: CompletionListener) -> None:
        """Register a coroutine called once for every attempt that reaches DONE."""
        self._listeners.append(listener)

    def get_attempt(self, attempt_id: str) -> PaymentAttempt | None:
        """Return an in-flight attempt."""
        return self._active.get(attempt_id)

    # ─── Entry Points ────────────────────────────────────────────────

    def create_attempt(
        self,
        receiver_identity: str,
        amount: Decimal | str | int,
        source_network_id: int,
        source_asset: str,
        payer_identity: str = "",
        request_id: str | None = None,
    ) -> PaymentAttempt:
        """Create an IDLE attempt. Raises ValidationError for a non-positive amount."""
        return PaymentAttempt(
            id=f"att_{uuid.uuid4().hex}",
            payer_identity=payer_identity,
            receiver_identity=receiver_identity,
            amount=require_positive_amount(amount),
            source_network_id=source_network_id,
            source_asset=source_asset,
            request_id=request_id,
        )

    async def pay(
        self,
        session: WalletSession,
        receiver_identity: str,
        preference: SettlementPreference,
        amount: Decimal | str | int,
        source_network_id: int,
        source_asset: str,
        payer_identity: str = "",
        request_id: str | None = None,
    ) -> PaymentAttempt:
        """Create an attempt and run it to DONE or FAILED."""
        attempt = self.create_attempt(
            receiver_identity,
            amount,
            source_network_id,
            source_asset,
            payer_identity=payer_identity,
            request_id=request_id,
        )
        return await self.execute(attempt, session, preference)

    async def retry(
        self,
        attempt: PaymentAttempt,
        session: WalletSession,
        preference: SettlementPreference,
    ) -> PaymentAttempt:
        """
        Run a FAILED attempt again from IDLE.

        The route is always fetched anew; nothing from the failed run is reused.
        An attempt whose settlement was broadcast is never retried, since the
        broadcast transaction may still land.
        """
        if attempt.settlement_submitted:
            raise InvalidStateTransitionError(
                f"Attempt {attempt.id} already broadcast settlement {attempt.settlement_tx_hash}",
                from_state=attempt.state.value,
                to_state=OrchestratorState.IDLE.value,
                details={"tx_hash": attempt.settlement_tx_hash},
            )
        self._transition(attempt, OrchestratorState.IDLE)
        attempt.reset()
        attempt.current_step = AttemptStep.NONE
        attempt.error = None
        attempt.error_code = None
        attempt.approval_tx_hash = None
        attempt.last_seen_transaction_hash = None
        attempt.submitted_transactions.clear()
        attempt.finished_at = None
        return await self.execute(attempt, session, preference)

    async def execute(
        self,
        attempt: PaymentAttempt,
        session: WalletSession,
        preference: SettlementPreference,
    ) -> PaymentAttempt:
        """
        Drive an IDLE attempt to a terminal state.

        CrossPay errors end the attempt in FAILED with ``error`` and
        ``error_code`` set; they are not raised to the caller.
        """
        if attempt.state != OrchestratorState.IDLE:
            raise InvalidStateTransitionError(
                f"Attempt {attempt.id} is not idle",
                from_state=attempt.state.value,
                to_state=OrchestratorState.ROUTING.value,
            )

        self._active[attempt.id] = attempt
        self._cancel_events[attempt.id] = asyncio.Event()
        try:
            await self._run(attempt, session, preference)
        except CrossPayError as e:
            self._fail(attempt, e)
        finally:
            self._active.pop(attempt.id, None)
            self._cancel_events.pop(attempt.id, None)
        return attempt

    def cancel(self, attempt_id: str) -> bool:
        """
        Request cancellation of an in-flight attempt.

        An open signature prompt is abandoned at once and no later prompt is
        shown. Returns True when the attempt was before or at a signature
        prompt; an approval already broadcast cannot be undone, only the
        settlement that would follow it.
        """
        attempt = self._active.get(attempt_id)
        if attempt is None:
            return False
        prevented = attempt.request_cancel()
        event = self._cancel_events.get(attempt_id)
        if event is not None:
            event.set()
        logger.info(f"Attempt {attempt_id}: cancellation requested at step {attempt.current_step.value}")
        return prevented

    async def handle_settlement_confirmation(self, attempt: PaymentAttempt, tx_hash: str) -> bool:
        """
        Apply a settlement confirmation event.

        Idempotent: completion side effects run once per attempt no matter
        how often the event for a hash is delivered. Returns True only for
        the delivery that completed the attempt.

        A FAILED attempt whose broadcast settlement was never observed (wait
        timed out or the payer cancelled after broadcast) is still completed
        by a confirmation for that settlement hash.
        """
        if tx_hash in attempt.processed_hashes:
            logger.debug(f"Attempt {attempt.id}: ignoring replayed confirmation for {tx_hash}")
            return False
        late = attempt.state == OrchestratorState.FAILED and attempt.confirmation_pending
        if (
            not (attempt.state == OrchestratorState.CONFIRMING_SETTLEMENT or late)
            or tx_hash != attempt.settlement_tx_hash
        ):
            logger.debug(
                f"Attempt {attempt.id}: ignoring confirmation for {tx_hash} in state {attempt.state.value}"
            )
            return False

        # Recorded before any await so a concurrent replay sees it
        attempt.processed_hashes.add(tx_hash)
        attempt.last_seen_transaction_hash = tx_hash
        attempt.confirmation_pending = False
        attempt.current_step = AttemptStep.COMPLETE
        if late:
            logger.info(f"Attempt {attempt.id}: late settlement confirmation for {tx_hash}")
            attempt.error = None
            attempt.error_code = None
        self._transition(attempt, OrchestratorState.DONE)
        attempt.finished_at = utcnow()

        if attempt.request_id and self._requests is not None:
            try:
                await self._requests.mark_accepted(attempt.request_id)
            except CrossPayError as e:
                # The settlement already landed; the attempt stays DONE.
                logger.error(
                    f"Attempt {attempt.id}: settled but request {attempt.request_id} "
                    f"could not be accepted: {e}"
                )
                attempt.error = e.message
                attempt.error_code = e.code

        for listener in self._listeners:
            await listener(attempt)
        return True

    # ─── State Machine ───────────────────────────────────────────────

    async def _run(
        self,
        attempt: PaymentAttempt,
        session: WalletSession,
        preference: SettlementPreference,
    ) -> None:
        self._transition(attempt, OrchestratorState.ROUTING)

        destination = self._plans.validate_destination(preference)
        route = await self._quotes.resolve_route(
            session.address, attempt.amount, attempt.source_network_id, attempt.source_asset
        )
        attempt.route = route
        self._check_cancelled(attempt)

        plan = await self._plans.build_plan(
            attempt.source_network_id,
            attempt.source_asset,
            attempt.amount,
            destination,
            route,
            session.address,
        )
        attempt.plan = plan
        self._check_cancelled(attempt)

        await self._switch_network(attempt, session, plan.execution_network_id)

        if plan.requires_approval:
            self._transition(attempt, OrchestratorState.APPROVING)
            await self._approve(attempt, session, plan)

        self._transition(attempt, OrchestratorState.SETTLING)
        tx = await self._build_settlement(attempt, session, plan)
        tx_hash = await self._submit(attempt, session, tx, AttemptStep.AWAITING_SETTLEMENT_SIGNATURE)

        self._transition(attempt, OrchestratorState.CONFIRMING_SETTLEMENT)
        attempt.current_step = AttemptStep.AWAITING_SETTLEMENT_CONFIRMATION
        try:
            outcome = await self._await_receipt(session, tx_hash, plan.execution_network_id)
        except Exception as e:
            attempt.confirmation_pending = True
            raise TransactionFailedError(
                f"Settlement confirmation wait failed: {e}", tx_hash=tx_hash
            ) from e

        if outcome == ConfirmationOutcome.CONFIRMED:
            await self.handle_settlement_confirmation(attempt, tx_hash)
        elif outcome == ConfirmationOutcome.REVERTED:
            raise TransactionFailedError("Settlement transaction reverted", tx_hash=tx_hash)
        else:
            # Inconclusive: a late confirmation may still complete the attempt
            attempt.confirmation_pending = True
            raise TransactionFailedError(
                "Settlement confirmation was not observed in time",
                tx_hash=tx_hash,
                details={"tx_hash": tx_hash},
            )

    async def _switch_network(
        self, attempt: PaymentAttempt, session: WalletSession, network_id: int
    ) -> None:
        if session.active_network_id == network_id:
            return
        self._check_cancelled(attempt)
        from_network = session.active_network_id
        logger.info(f"Attempt {attempt.id}: switching wallet from {from_network} to {network_id}")
        try:
            await session.ensure_network(network_id)
        except WalletRejectedError as e:
            raise NetworkSwitchError(
                "Network switch was declined", from_network=from_network, to_network=network_id
            ) from e
        except Exception as e:
            raise NetworkSwitchError(
                f"Network switch failed: {e}", from_network=from_network, to_network=network_id
            ) from e

    async def _approve(
        self, attempt: PaymentAttempt, session: WalletSession, plan: SettlementPlan
    ) -> None:
        tx = self._plans.approval_transaction(plan)
        tx_hash = await self._submit(attempt, session, tx, AttemptStep.AWAITING_APPROVAL_SIGNATURE)
        attempt.current_step = AttemptStep.AWAITING_APPROVAL_CONFIRMATION

        # An allowance that is already sufficient needs no receipt
        try:
            check = await self._plans.check_allowance(
                plan.deposit_network_id, plan.deposit_asset, session.address, plan.deposit_amount
            )
        except ChainReadError as e:
            logger.debug(f"Attempt {attempt.id}: allowance re-check failed, waiting for receipt: {e}")
        else:
            if not check.needs_approval:
                logger.info(f"Attempt {attempt.id}: allowance already sufficient, skipping receipt wait")
                return

        try:
            outcome = await self._await_receipt(session, tx_hash, plan.deposit_network_id)
        except Exception as e:
            logger.warning(
                f"Attempt {attempt.id}: approval confirmation wait failed ({e}), proceeding to settlement"
            )
            return

        if outcome == ConfirmationOutcome.REVERTED:
            raise TransactionFailedError("Approval transaction reverted", tx_hash=tx_hash)
        if outcome == ConfirmationOutcome.TIMED_OUT:
            logger.warning(
                f"Attempt {attempt.id}: approval {tx_hash} not confirmed in time, proceeding to settlement"
            )

    async def _build_settlement(
        self, attempt: PaymentAttempt, session: WalletSession, plan: SettlementPlan
    ) -> TransactionRequest:
        response = await self._provider.build_transaction(
            SettlementBuildRequest(
                receiver_identity=attempt.receiver_identity,
                amount=plan.deposit_amount,
                source_network_id=plan.deposit_network_id,
                source_asset_symbol=plan.deposit_asset,
                source_address=session.address,
                overrides=SettlementPreference(
                    network_id=plan.destination_network_id,
                    asset_symbol=plan.destination_asset,
                    address=plan.destination_address,
                ),
            )
        )
        if response.is_direct_transfer != plan.is_direct_transfer:
            logger.warning(
                f"Attempt {attempt.id}: provider reports direct transfer={response.is_direct_transfer}, "
                f"plan has {plan.is_direct_transfer}"
            )
        return validate_settlement_transaction(
            response, plan.execution_network_id, self._config.min_transaction_data_length
        )

    async def _submit(
        self,
        attempt: PaymentAttempt,
        session: WalletSession,
        tx: TransactionRequest,
        step: AttemptStep,
    ) -> str:
        self._check_cancelled(attempt)
        if tx.kind == "settlement" and attempt.settlement_submitted:
            raise InvalidStateTransitionError(
                "Settlement already submitted for this attempt",
                from_state=attempt.current_step.value,
                to_state=step.value,
            )
        attempt.current_step = step
        logger.info(f"Attempt {attempt.id}: requesting {tx.kind} signature on network {tx.network_id}")
        try:
            tx_hash = await self._await_signature(attempt, session, tx)
        except WalletRejectedError as e:
            raise UserRejectedError(
                f"Payer declined the {tx.kind} signature",
                receiver=attempt.receiver_identity,
                amount=attempt.amount,
            ) from e
        except CrossPayError:
            raise
        except Exception as e:
            raise TransactionFailedError(f"Wallet failed to submit {tx.kind} transaction: {e}") from e

        attempt.submitted_transactions.append(tx)
        attempt.last_seen_transaction_hash = tx_hash
        if tx.kind == "settlement":
            attempt.settlement_tx_hash = tx_hash
        else:
            attempt.approval_tx_hash = tx_hash
        logger.info(f"Attempt {attempt.id}: {tx.kind} transaction broadcast: {tx_hash}")

        if attempt.cancel_requested:
            # The wallet answered after the payer cancelled at the prompt
            if tx.kind == "settlement":
                attempt.confirmation_pending = True
            raise AttemptCancelledError(
                f"Payment cancelled by payer after {tx.kind} broadcast",
                receiver=attempt.receiver_identity,
                amount=attempt.amount,
                details={"tx_hash": tx_hash},
            )
        return tx_hash

    async def _await_signature(
        self, attempt: PaymentAttempt, session: WalletSession, tx: TransactionRequest
    ) -> str:
        """Wait for the wallet, abandoning the prompt if the payer cancels first."""
        cancelled = self._cancel_events.get(attempt.id)
        if cancelled is None:
            return await session.observer.submit(tx)

        submit_task = asyncio.ensure_future(session.observer.submit(tx))
        cancel_task = asyncio.ensure_future(cancelled.wait())
        try:
            await asyncio.wait({submit_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not submit_task.done():
                submit_task.cancel()

        if not submit_task.done() or submit_task.cancelled():
            await asyncio.gather(submit_task, return_exceptions=True)
            logger.info(f"Attempt {attempt.id}: {tx.kind} signature prompt abandoned")
            raise AttemptCancelledError(
                f"Payment cancelled by payer at the {tx.kind} signature",
                receiver=attempt.receiver_identity,
                amount=attempt.amount,
            )
        return submit_task.result()

    async def _await_receipt(
        self, session: WalletSession, tx_hash: str, network_id: int
    ) -> ConfirmationOutcome:
        timeout = self._config.confirmation_timeout_for(network_id)
        return await session.observer.await_confirmation(tx_hash, timeout)

    # ─── Helpers ─────────────────────────────────────────────────────

    def _transition(self, attempt: PaymentAttempt, new_state: OrchestratorState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[attempt.state]:
            raise InvalidStateTransitionError(
                f"Invalid transition {attempt.state.value} -> {new_state.value}",
                from_state=attempt.state.value,
                to_state=new_state.value,
            )
        logger.info(f"Attempt {attempt.id}: {attempt.state.value} -> {new_state.value}")
        attempt.state = new_state
        attempt.state_history.append(new_state)

    @staticmethod
    def _check_cancelled(attempt: PaymentAttempt) -> None:
        if attempt.cancel_requested:
            raise AttemptCancelledError(
                "Payment cancelled by payer",
                receiver=attempt.receiver_identity,
                amount=attempt.amount,
            )

    def _fail(self, attempt: PaymentAttempt, error: CrossPayError) -> None:
        if attempt.state.is_terminal():
            logger.error(f"Attempt {attempt.id}: error after {attempt.state.value}: {error}")
            return
        self._transition(attempt, OrchestratorState.FAILED)
        attempt.current_step = AttemptStep.FAILED
        attempt.error = error.message
        attempt.error_code = error.code
        attempt.finished_at = utcnow()
        attempt.reset()
        logger.error(f"Attempt {attempt.id} failed [{error.code}]: {error}")
