"""Exceptions raised by the trend notifier."""


class TrendNotifierError(Exception):
    """Base class for all job errors."""

    kind = "error"


class FetchError(TrendNotifierError):
    """Every upstream source failed or came back empty."""

    kind = "fetch"


class ParseError(TrendNotifierError):
    """An upstream payload could not be decoded."""

    kind = "parse"


class StoreError(TrendNotifierError):
    """The seen-set store could not be read or written."""

    kind = "store"


class DeliveryError(TrendNotifierError):
    """The webhook rejected or never received the notification."""

    kind = "delivery"

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
