__all__ = ("CacheGateError", "HeaderValidationError")


class CacheGateError(Exception): ...


class HeaderValidationError(CacheGateError):
    """
    Raised by strict integrations when a conditional header is malformed.

    The core parser never raises it: malformed values are treated as absent.
    """

    def __init__(self, header_name: str, header_value: str) -> None:
        super().__init__(f"The header '{header_name}' has an invalid value: {header_value!r}")
        self.header_name = header_name
        self.header_value = header_value
