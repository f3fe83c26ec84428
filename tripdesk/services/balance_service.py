from typing import Optional

from tripdesk.enums import BalanceStyle, BalanceType
from tripdesk.logger import logger
from tripdesk.models.customer import CustomerBalance
from tripdesk.services.trip_api import TripApiClient


class BalanceService:
    """Reads and writes a customer's running balance.

    The write after a sale is best effort: `sync` never raises, it logs and
    reports whether the backend accepted the new balance.
    """

    def __init__(self, api: TripApiClient, style: BalanceStyle = BalanceStyle.OPENING):
        self.api = api
        self.style = BalanceStyle(style)

    async def fetch(self, client_id: Optional[str], user_id: Optional[str] = None) -> Optional[CustomerBalance]:
        """Current balance of a customer, or None when it cannot be read."""
        if user_id:
            result = await self.api.get_customer_profile(user_id)
        elif client_id:
            result = await self.api.get_customer(client_id)
        else:
            return None

        if not result.ok:
            logger.warning(f"Could not fetch balance for customer {client_id or user_id}: {result.error.message}")
            return None
        return CustomerBalance.from_profile(result.value, self.style)

    async def sync(self, client_id: str, balance: float) -> bool:
        try:
            if self.style == BalanceStyle.OUTSTANDING:
                balance_type = BalanceType.CREDIT if balance < 0 else BalanceType.DEBIT
                result = await self.api.set_outstanding_balance(client_id, abs(balance), balance_type.value)
            else:
                result = await self.api.set_opening_balance(client_id, balance)
        except Exception as e:
            logger.error(f"Balance sync for customer {client_id} raised: {e}", exc_info=True)
            return False

        if not result.ok:
            logger.error(f"Balance sync for customer {client_id} failed: {result.error.message}")
            return False
        logger.info(f"Customer {client_id} balance set to {balance}")
        return True
