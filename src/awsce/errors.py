class AwsCeError(Exception):
    """
    base class for every error raised while fetching billing metrics.
    """


class ConnectionSetupError(AwsCeError):
    """
    raised when the billing API session or client cannot be built.
    """


class UpstreamQueryError(AwsCeError):
    """
    raised when a billing API call fails (transport, auth, throttling
    or a rejected request).
    """

    def __init__(self, operation: "str", message: "str", code: "str" = "") -> "None":
        self.operation = operation
        self.code = code
        detail = f"{operation}: {message}"
        if code:
            detail = f"{operation}: [{code}] {message}"
        super().__init__(detail)


class MalformedAmountError(UpstreamQueryError):
    """
    raised when an amount returned by the billing API does not parse
    as a number.
    """

    def __init__(self, account_key: "str", amount: "object") -> "None":
        self.account_key = account_key
        self.amount = amount
        super().__init__(
            "GetCostAndUsage",
            f"unparseable amount {amount!r} for account {account_key}",
        )
