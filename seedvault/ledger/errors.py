class LedgerError(Exception):
    """Base class for errors raised by the ledger collaborator"""


class AccountNotFound(LedgerError):
    pass


class AccountAlreadyInUse(LedgerError):
    pass


class InsufficientLamports(LedgerError):
    pass


class MissingRequiredSignature(LedgerError):
    """Neither a transaction signature nor a seed proof covers the account"""


class IllegalOwner(LedgerError):
    """Account is not owned by the program trying to modify it"""


class AccountDataSizeMismatch(LedgerError):
    pass


class RentStateViolation(LedgerError):
    """Debited account left with a balance below its reserve minimum"""


class TransactionClosed(LedgerError):
    pass
