"""Exceptions raised by the median tracking subsystem."""


class UntrackedSymbolError(LookupError):
    """An operation referenced a symbol that is not being tracked."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"Symbol {symbol!r} is not being tracked")
