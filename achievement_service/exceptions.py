"""Exceptions raised by the achievements core"""


class AchievementError(Exception):
    """Base error for achievement evaluation."""


class DataAccessError(AchievementError):
    """Reading facts or writing the ledger failed.

    Recovered per evaluator by the dispatcher; never fails the triggering action.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")
