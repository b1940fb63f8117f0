"""Budget-aware purchase decisions with auditable reason codes."""

from typing import List, Tuple

from .models import Decision, ReasonCode


class EconomicReasoningEngine:
    def __init__(self, initial_budget_usdc: float) -> None:
        self._budget_remaining = initial_budget_usdc
        self._reason_codes: List[ReasonCode] = []

    def should_purchase(self, tool: str, cost_usdc: float) -> bool:
        """Decide only; the budget is debited by ``record_spend`` after a purchase succeeds."""

        affordable = cost_usdc <= self._budget_remaining
        verdict = "Proceeding." if affordable else "Skipping."
        self._reason_codes.append(
            ReasonCode(
                tool=tool,
                cost_usdc=cost_usdc,
                budget_remaining_usdc=self._budget_remaining,
                decision=Decision.PROCEED if affordable else Decision.SKIP,
                reason=(
                    f"{tool} costs ${cost_usdc:.2f}. "
                    f"Budget remaining ${self._budget_remaining:.2f}. {verdict}"
                ),
            )
        )
        return affordable

    def record_spend(self, amount_usdc: float) -> None:
        if amount_usdc < 0:
            raise ValueError("Spend amount must be non-negative.")
        self._budget_remaining -= amount_usdc

    @property
    def budget_remaining(self) -> float:
        return self._budget_remaining

    @property
    def reason_codes(self) -> Tuple[ReasonCode, ...]:
        return tuple(self._reason_codes)
