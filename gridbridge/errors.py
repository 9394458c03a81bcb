"""Exception hierarchy shared by parsing, publishing and security."""


class GridBridgeError(Exception):
    """Base exception for GridBridge failures"""
    pass


class EventParsingError(GridBridgeError, ValueError):
    """Raised when a raw payload cannot be turned into events"""
    pass


class EventPayloadError(GridBridgeError, ValueError):
    """Raised when event data cannot be projected onto the requested type"""
    pass


class EventPublishingError(GridBridgeError):
    """Raised when publishing to an Event Grid topic fails outside the Azure SDK"""
    pass


class CircuitOpenError(GridBridgeError):
    """Raised when a call is rejected because the circuit breaker is open"""
    pass


class SecretNotFoundError(GridBridgeError, KeyError):
    """Raised when a secret provider has no value for the requested name"""

    def __init__(self, secret_name: str):
        super().__init__(secret_name)
        self.secret_name = secret_name

    def __str__(self) -> str:
        return f"No secret found with name '{self.secret_name}'"
