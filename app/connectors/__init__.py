"""External API connectors"""

from app.connectors.shiprocket_connector import ShiprocketAPIError, ShiprocketConnector

__all__ = [
    "ShiprocketAPIError",
    "ShiprocketConnector",
]
