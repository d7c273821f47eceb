"""
gateway.py - Fund Movement Between Accounts and the Pool Reserve

TransferGateway is the only path by which the lending service touches the
currency ledger. It converts fixed-point amounts to Decimal, fixes the pool
reserve as one side of every transfer, and translates currency failures into
lending errors.
"""

from __future__ import annotations
from decimal import Decimal

from .core import (
    CurrencyLedger, POOL_RESERVE_ACCOUNT,
    InsufficientCallerFunds, InsufficientPoolReserve,
)
from .currency import AccountNotRegistered, InsufficientFunds
from .fixed_point import FixedPoint


class TransferGateway:
    """
    Moves value between an account and the pool reserve.

    Every call is synchronous and either moves the full amount or raises
    with no balance changed.
    """

    def __init__(self, currency: CurrencyLedger, reserve_account: str = POOL_RESERVE_ACCOUNT):
        self.currency = currency
        self.reserve_account = reserve_account

    def reserve(self) -> Decimal:
        """Balance currently available in the pool reserve."""
        return self.currency.balance_of(self.reserve_account)

    def collect(self, account: str, amount: FixedPoint) -> None:
        """
        Move amount from account into the pool reserve.

        Raises:
            InsufficientCallerFunds: If the account cannot cover amount
                                     (an unregistered account holds nothing)
        """
        if amount.is_zero():
            return
        try:
            self.currency.transfer(account, self.reserve_account, amount.to_decimal())
        except (InsufficientFunds, AccountNotRegistered) as exc:
            raise InsufficientCallerFunds(str(exc)) from exc

    def pay_out(self, account: str, amount: FixedPoint) -> None:
        """
        Move amount from the pool reserve to account.

        Raises:
            InsufficientPoolReserve: If the reserve cannot cover amount
        """
        if amount.is_zero():
            return
        try:
            self.currency.transfer(self.reserve_account, account, amount.to_decimal())
        except InsufficientFunds as exc:
            raise InsufficientPoolReserve(str(exc)) from exc
