"""Challenge-response token vending for the messaging cluster."""

__version__ = "0.1.0"
