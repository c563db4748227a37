"""Error hierarchy for Attendify services.

Two families live here:
- AttendifyError: domain errors (business-rule violations) carrying a
  human-readable reason; the API maps them to HTTP 400
- ServiceError: infrastructure errors, split into TransientError (retryable)
  and PermanentError (will not succeed on retry)
"""


class AttendifyError(Exception):
    """Business-rule violation surfaced to the caller as a client error."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class UnsupportedNetworkError(AttendifyError):
    """Network is not configured or its vault seed is invalid."""

    pass


class TooManyTicketsError(AttendifyError):
    """Requested ticket count exceeds the per-account cap."""

    pass


class InsufficientReserveError(AttendifyError):
    """Vault balance cannot cover the owner reserve of new ledger objects."""

    pass


class NotAuthorizedToMintError(AttendifyError):
    """Event cannot be minted in its current state or by the vault."""

    pass


class RefundAlreadyProcessedError(AttendifyError):
    """Deposit refund was already submitted for the event."""

    pass


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry.

    Examples:
    - Network timeouts
    - Rate limit exceeded (429)
    - Ledger connection failures
    - Transaction expired before validation
    """

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry.

    Examples:
    - Authentication failures (401, 403)
    - Malformed transactions
    - Transactions included with a failure result
    """

    pass


# IPFS-specific errors
class IPFSRateLimitError(TransientError):
    """Rate limit exceeded (429)."""

    pass


class IPFSNetworkError(TransientError):
    """Network timeout or service unavailable."""

    pass


class IPFSAuthError(PermanentError):
    """Authentication failure (401, 403)."""

    pass


class IPFSValidationError(PermanentError):
    """Bad request (400)."""

    pass


# Ledger-specific errors
class LedgerError(ServiceError):
    """Base exception for XRP Ledger errors."""

    pass


class LedgerConnectionError(TransientError, LedgerError):
    """Failed to open a websocket connection to the ledger endpoint."""

    pass


class LedgerRequestError(LedgerError):
    """Ledger answered a request with an error response."""

    def __init__(self, error: str, error_code: int | None = None, message: str | None = None):
        super().__init__(message or f"Ledger request failed: {error}")
        self.error = error
        self.error_code = error_code


class TransactionRejectedError(PermanentError, LedgerError):
    """Transaction was rejected at submission and will never be included."""

    def __init__(self, engine_result: str, message: str = ""):
        super().__init__(f"Transaction rejected with {engine_result}: {message}".rstrip(": "))
        self.engine_result = engine_result


class TransactionFailedError(PermanentError, LedgerError):
    """Transaction was included in a validated ledger with a non-success result.

    The fee is still charged in that case, so it is carried for bookkeeping.
    """

    def __init__(self, tx_hash: str, result_code: str, fee: int = 0):
        super().__init__(f"Transaction {tx_hash} failed with {result_code}")
        self.tx_hash = tx_hash
        self.result_code = result_code
        self.fee = fee


class TransactionExpiredError(TransientError, LedgerError):
    """LastLedgerSequence passed without the transaction being validated."""

    pass


class SubmissionTimeoutError(TransientError, LedgerError):
    """Polling gave up after the configured number of attempts."""

    pass
