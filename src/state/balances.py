"""
Asset balance tracking.

Implements:
- BalanceTable[Address, AssetId] -> Amount: the asset ledger every account
  (the engine included) holds funds in. Its view of the engine's holdings is
  the "externally observable" balance the payment protocol snapshots.
- TrackedBalances[AssetId] -> Amount: the engine's own bookkeeping of what it
  believes it holds.
"""

from typing import Dict, Tuple


# Type aliases
Address = str  # account identifier
AssetId = str  # asset identifier; ordering is plain string comparison
Amount = int  # Non-negative integer (arbitrary precision)


class BalanceTable:
    """
    Balance table mapping (account, asset) -> amount.

    Note: this class stores balances in a plain dict. Callers that need a
    deterministic order must sort keys themselves.
    """

    def __init__(self):
        """Initialize empty balance table."""
        self._balances: Dict[Tuple[Address, AssetId], Amount] = {}

    def get(self, account: Address, asset: AssetId) -> Amount:
        """Get balance for (account, asset). Returns 0 if not found."""
        return self._balances.get((account, asset), 0)

    def set(self, account: Address, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (account, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop((account, asset), None)
        else:
            self._balances[(account, asset)] = amount

    def add(self, account: Address, asset: AssetId, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(account, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(account, asset, new_balance)

    def subtract(self, account: Address, asset: AssetId, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, asset, -delta)

    def transfer(self, sender: Address, recipient: Address, asset: AssetId, amount: Amount) -> None:
        """
        Move `amount` of `asset` from sender to recipient.

        Raises:
            ValueError: If amount is negative or sender has insufficient balance
        """
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative: {amount}")
        self.subtract(sender, asset, amount)
        self.add(recipient, asset, amount)

    def snapshot(self) -> Dict[Tuple[Address, AssetId], Amount]:
        return dict(self._balances)

    def restore(self, snapshot: Dict[Tuple[Address, AssetId], Amount]) -> None:
        self._balances = dict(snapshot)

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"


class TrackedBalances:
    """Per-asset record of the funds the engine accounts for."""

    def __init__(self) -> None:
        self._tracked: Dict[AssetId, Amount] = {}

    def get(self, asset: AssetId) -> Amount:
        return self._tracked.get(asset, 0)

    def add(self, asset: AssetId, delta: int) -> None:
        current = self.get(asset)
        new_value = current + delta
        if new_value < 0:
            raise ValueError(
                f"Tracked balance would go negative for {asset}: {current} + {delta}"
            )
        if new_value == 0:
            self._tracked.pop(asset, None)
        else:
            self._tracked[asset] = new_value

    def snapshot(self) -> Dict[AssetId, Amount]:
        return dict(self._tracked)

    def restore(self, snapshot: Dict[AssetId, Amount]) -> None:
        self._tracked = dict(snapshot)

    def __repr__(self) -> str:
        return f"TrackedBalances({len(self._tracked)} assets)"
