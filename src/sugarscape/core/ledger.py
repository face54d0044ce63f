"""
Loan ledger for the credit network.

Loans are simple-interest obligations between two live agents. The ledger
owns every outstanding loan, partitions due loans into conflict-free
settlement batches and disperses the loans of agents who die.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator

# Returns the agent ids that take over a dead lender's loans.
HeirResolver = Callable[[int, "set[int]"], list[int]]


@dataclass
class Loan:
    """An outstanding loan from ``lender_id`` to ``borrower_id``."""

    loan_id: int
    lender_id: int
    borrower_id: int
    principal: float
    origination_tick: int
    due_tick: int
    interest_rate: float

    @property
    def duration(self) -> int:
        return self.due_tick - self.origination_tick

    def amount_due(self) -> float:
        """Principal plus simple interest over the loan's duration."""
        return self.principal * (1.0 + self.interest_rate * self.duration)


@dataclass
class DispersalResult:
    """What happened to the loans of one dead agent."""

    defaulted: list[Loan] = field(default_factory=list)
    forgiven: list[Loan] = field(default_factory=list)
    reassigned: list[Loan] = field(default_factory=list)


class LoanLedger:
    """All outstanding loans, keyed by loan id in origination order."""

    def __init__(self) -> None:
        self._loans: dict[int, Loan] = {}
        self._next_id = 0
        # Installed by the inheritance rule; None means lender death forgives.
        self.heir_resolver: HeirResolver | None = None

    def originate(
        self,
        lender_id: int,
        borrower_id: int,
        principal: float,
        tick: int,
        duration: int,
        interest_rate: float,
    ) -> Loan:
        if lender_id == borrower_id:
            raise ValueError(f"Agent {lender_id} cannot lend to itself")
        if principal <= 0:
            raise ValueError(f"Loan principal must be positive, got {principal}")
        loan = Loan(
            loan_id=self._next_id,
            lender_id=lender_id,
            borrower_id=borrower_id,
            principal=principal,
            origination_tick=tick,
            due_tick=tick + duration,
            interest_rate=interest_rate,
        )
        self._next_id += 1
        self._loans[loan.loan_id] = loan
        return loan

    def close(self, loan: Loan) -> None:
        del self._loans[loan.loan_id]

    def __iter__(self) -> Iterator[Loan]:
        return iter(list(self._loans.values()))

    def __len__(self) -> int:
        return len(self._loans)

    def __contains__(self, loan: object) -> bool:
        return isinstance(loan, Loan) and loan.loan_id in self._loans

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def due_at(self, tick: int) -> list[Loan]:
        """Loans falling due at or before ``tick``, oldest first."""
        return [loan for loan in self._loans.values() if loan.due_tick <= tick]

    def owed_by(self, agent_id: int) -> list[Loan]:
        return [loan for loan in self._loans.values() if loan.borrower_id == agent_id]

    def lent_by(self, agent_id: int) -> list[Loan]:
        return [loan for loan in self._loans.values() if loan.lender_id == agent_id]

    def principal_owed(self, agent_id: int) -> float:
        return sum(loan.principal for loan in self.owed_by(agent_id))

    def total_outstanding(self) -> float:
        return sum(loan.principal for loan in self._loans.values())

    @staticmethod
    def conflict_free_batches(loans: list[Loan]) -> list[list[Loan]]:
        """Partition ``loans`` so no borrower appears twice in a batch.

        A borrower's k-th loan (in input order) lands in batch k, so the
        number of batches equals the largest number of loans any single
        borrower has in ``loans``.
        """
        batches: list[list[Loan]] = []
        seen: dict[int, int] = {}
        for loan in loans:
            index = seen.get(loan.borrower_id, 0)
            seen[loan.borrower_id] = index + 1
            if index == len(batches):
                batches.append([])
            batches[index].append(loan)
        return batches

    # ------------------------------------------------------------------
    # Death handling
    # ------------------------------------------------------------------

    def disperse(self, agent_id: int, co_dying: set[int] | None = None) -> DispersalResult:
        """Remove or reassign every loan that references ``agent_id``.

        Loans the agent owes default: the lender loses the principal. Loans
        the agent made are split equally among its heirs (one successor
        loan per heir, same dates) when a heir resolver is installed and
        yields heirs other than the borrower; otherwise they are forgiven.
        """
        co_dying = co_dying or set()
        result = DispersalResult()
        for loan in self.owed_by(agent_id):
            self.close(loan)
            result.defaulted.append(loan)
        for loan in self.lent_by(agent_id):
            self.close(loan)
            heirs: list[int] = []
            if self.heir_resolver is not None:
                heirs = [
                    h for h in self.heir_resolver(agent_id, co_dying)
                    if h != loan.borrower_id
                ]
            if not heirs:
                result.forgiven.append(loan)
                continue
            share = loan.principal / len(heirs)
            for heir in heirs:
                successor = Loan(
                    loan_id=self._next_id,
                    lender_id=heir,
                    borrower_id=loan.borrower_id,
                    principal=share,
                    origination_tick=loan.origination_tick,
                    due_tick=loan.due_tick,
                    interest_rate=loan.interest_rate,
                )
                self._next_id += 1
                self._loans[successor.loan_id] = successor
                result.reassigned.append(successor)
        return result
