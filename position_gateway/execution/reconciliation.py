"""
RECONCILIATION ENGINE
=====================

Given an OrderIntent and an account:

    1. Query the current position (never cached, backend is the truth)
    2. current == requested          -> NoActionNeeded, backend untouched
    3. current is the opposite side  -> CLOSEPOSITION first
    4. Market entry (LONG => BUY, SHORT => SELL)
    5. Protective stop on the OPPOSITE side of the entry, if a stop loss is given

Steps run strictly in sequence. The first failed step ends the sequence:
no retry, no rollback. Actions already performed are reported with the
failure so the caller can see partial execution.

The stop price is passed through as given. Whether it sits on the correct
side of the market is the caller's responsibility.
"""

import logging
from typing import List, Optional

from position_gateway.brokers.base import BackendError, ExecutionBackend
from position_gateway.domain.models import (
    CommandResult,
    Executed,
    Failed,
    NoActionNeeded,
    OrderIntent,
    PlannedAction,
    PositionState,
    ReconciliationPlan,
    ReconciliationResult,
    Step,
)
from position_gateway.execution.symbol_guard import SymbolGuard

logger = logging.getLogger(__name__)


def build_plan(
    intent: OrderIntent,
    current: PositionState,
    account: str,
) -> Optional[ReconciliationPlan]:
    """
    Pure planning step. Returns None when no action is needed.
    """
    if current == intent.requested_state:
        return None

    actions: List[PlannedAction] = []

    if current is not PositionState.FLAT:
        actions.append(PlannedAction(step=Step.FLATTEN))

    side = intent.entry_side
    actions.append(PlannedAction(step=Step.ENTER, side=side, quantity=intent.quantity))

    if intent.stop_loss is not None:
        actions.append(
            PlannedAction(
                step=Step.STOP,
                side=side.opposite(),
                quantity=intent.quantity,
                stop_price=intent.stop_loss,
            )
        )

    return ReconciliationPlan(
        symbol=intent.symbol,
        account=account,
        current=current,
        actions=tuple(actions),
    )


class ReconciliationEngine:

    def __init__(self, backend: ExecutionBackend, guard: Optional[SymbolGuard] = None):
        self.backend = backend
        self.guard = guard or SymbolGuard()

    # -------------------------------------------------
    # PUBLIC ENTRY
    # -------------------------------------------------
    def reconcile(self, intent: OrderIntent, account: str) -> ReconciliationResult:
        with self.guard.hold(intent.symbol, account):
            return self._reconcile(intent, account)

    def _reconcile(self, intent: OrderIntent, account: str) -> ReconciliationResult:
        try:
            current = self.backend.get_position(intent.symbol, account)
        except BackendError as exc:
            logger.error(
                f"Position query failed | {intent.symbol} | {account} | "
                f"{type(exc).__name__}: {exc}"
            )
            return Failed(step=Step.QUERY, reason=f"{type(exc).__name__}: {exc}")

        plan = build_plan(intent, current, account)

        if plan is None:
            logger.info(
                f"Already in a {current.value} position for {intent.symbol}. "
                f"No trade executed."
            )
            return NoActionNeeded(current=current)

        logger.info(
            f"📋 PLAN | {intent.symbol} | {current.value} -> {intent.direction.value} | "
            f"{[s.value for s in plan.steps]}"
        )
        return self.dispatch(plan)

    # -------------------------------------------------
    # DISPATCH (SHORT-CIRCUIT)
    # -------------------------------------------------
    def dispatch(self, plan: ReconciliationPlan) -> ReconciliationResult:
        performed: List[Step] = []

        for action in plan.actions:
            result = self._run(plan, action)

            if not result.success:
                if performed:
                    logger.critical(
                        f"🚨 PARTIAL EXECUTION | {plan.symbol} | {plan.account} | "
                        f"done={[s.value for s in performed]} failed={action.step.value} | "
                        f"{result.message}"
                    )
                else:
                    logger.error(
                        f"❌ {action.step.value} failed | {plan.symbol} | {plan.account} | "
                        f"{result.message}"
                    )
                return Failed(
                    step=action.step,
                    reason=result.message,
                    actions=tuple(performed),
                )

            performed.append(action.step)

        flattened = plan.current if Step.FLATTEN in performed else None
        return Executed(actions=tuple(performed), flattened=flattened)

    def _run(self, plan: ReconciliationPlan, action: PlannedAction) -> CommandResult:
        symbol, account = plan.symbol, plan.account

        try:
            if action.step is Step.FLATTEN:
                logger.info(f"Flattening existing {plan.current.value} position for {symbol}...")
                result = self.backend.close_position(symbol, account)

            elif action.step is Step.ENTER:
                logger.info(f"Executing entry order: {action.side.value} {action.quantity} {symbol}")
                result = self.backend.place_market_order(
                    symbol, account, action.side, action.quantity
                )

            elif action.step is Step.STOP:
                logger.info(
                    f"Placing protective stop: {action.side.value} {action.quantity} "
                    f"{symbol} @ {action.stop_price}"
                )
                result = self.backend.place_protective_stop(
                    symbol, account, action.side, action.quantity, action.stop_price
                )

            else:
                raise ValueError(f"Unsupported plan step: {action.step}")

        except BackendError as exc:
            return CommandResult.failure(f"{type(exc).__name__}: {exc}")
        except Exception as exc:
            # steps already sent must still be reported
            logger.exception(f"Unexpected backend error during {action.step.value}")
            return CommandResult.failure(f"{type(exc).__name__}: {exc}")

        if result is None:
            return CommandResult.failure("Backend returned no result")
        return result
