"""Baseline banking: transfers between locked accounts."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Callable

from actorbench.retrier import Retrier, default_retrier

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionRequest:
    transaction_id: str
    source_iban: str
    destination_iban: str
    amount: int

    @classmethod
    def create(cls, src_id: str, dst_id: str, amount: int) -> "TransactionRequest":
        """Build a request whose id is ``TX<src>-><dst>:<amount>``."""
        return cls(f"TX{src_id}->{dst_id}:{amount}", src_id, dst_id, amount)


@dataclass(frozen=True)
class TransactionResponse:
    transaction_id: str
    success: bool


@dataclass(frozen=True)
class Account:
    iban: str
    amount: int


class AccountDao(ABC):
    """Storage of accounts with exclusive locks."""

    @abstractmethod
    def get_and_lock_account(self, iban: str) -> Account:
        ...

    @abstractmethod
    def unlock_account(self, iban: str) -> None:
        ...

    @abstractmethod
    def update_account(self, account: Account) -> None:
        ...


class BankingService:
    """Moves money between two accounts, holding both locks during the transfer."""

    def __init__(
        self,
        account_dao: AccountDao,
        retrier_factory: Callable[[], Retrier] = default_retrier,
    ) -> None:
        self.account_dao = account_dao
        self._retrier_factory = retrier_factory

    def execute_transaction(self, transaction_request: TransactionRequest) -> TransactionResponse:
        """Run the transfer, retrying failed attempts as the retrier allows.

        A transfer that would leave the source negative is answered with
        ``success=False``. Failing to release a lock ends the process.
        """
        return self._retrier_factory().do_with_return(
            lambda: self._attempt(transaction_request)
        )

    def _unlock(self, iban: str) -> None:
        try:
            self._retrier_factory().do_with_return(lambda: self.account_dao.unlock_account(iban))
        except Exception as err:
            log.critical("Could not unlock account %s : %s", iban, err)
            raise SystemExit(f"Could not unlock account {iban} : {err}") from err

    def _update(self, account: Account) -> None:
        try:
            self.account_dao.update_account(account)
        except Exception as err:
            log.warning("Failed to update account %s: %s", account.iban, err)

    def _attempt(self, request: TransactionRequest) -> TransactionResponse:
        source = self.account_dao.get_and_lock_account(request.source_iban)
        try:
            destination = self.account_dao.get_and_lock_account(request.destination_iban)
            try:
                if source.amount - request.amount < 0:
                    return TransactionResponse(request.transaction_id, False)
                self._update(replace(source, amount=source.amount - request.amount))
                self._update(replace(destination, amount=destination.amount + request.amount))
                return TransactionResponse(request.transaction_id, True)
            finally:
                self._unlock(request.destination_iban)
        finally:
            self._unlock(request.source_iban)