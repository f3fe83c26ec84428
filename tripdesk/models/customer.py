from pydantic import BaseModel
from typing import Any, Dict, Optional

from tripdesk.enums import BalanceStyle, BalanceType


class CustomerBalance(BaseModel):
    """A customer's running ledger balance before the current sale.

    The opening style is a single signed number; the outstanding style is a
    magnitude plus debit/credit. Both reduce to `signed`.
    """
    amount: float = 0.0
    balance_type: BalanceType = BalanceType.DEBIT
    style: BalanceStyle = BalanceStyle.OPENING

    @property
    def signed(self) -> float:
        if self.balance_type == BalanceType.CREDIT:
            return -self.amount
        return self.amount

    @classmethod
    def from_profile(cls, data: Dict[str, Any], style: BalanceStyle) -> "CustomerBalance":
        if style == BalanceStyle.OUTSTANDING:
            amount = data.get("outstandingBalance")
            if amount is None:
                amount = data.get("openingBalance")
            balance_type = data.get("outstandingBalanceType") or data.get("openingBalanceType") or BalanceType.DEBIT.value
            return cls(amount=float(amount or 0), balance_type=BalanceType(balance_type), style=style)
        return cls(amount=float(data.get("openingBalance") or 0), style=style)

    @classmethod
    def opening(cls, amount: Optional[float]) -> "CustomerBalance":
        return cls(amount=float(amount or 0), style=BalanceStyle.OPENING)
