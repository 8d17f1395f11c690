"""
Mock transports for testing.

Stand-ins for `websockets.connect` so the client runtime can be exercised
without a network, either scripted or looped back to an in-process gateway.
"""

from tests.mocks.mock_websockets import LoopbackConnector, MockClientConnection, MockConnector

__all__ = ["LoopbackConnector", "MockClientConnection", "MockConnector"]
