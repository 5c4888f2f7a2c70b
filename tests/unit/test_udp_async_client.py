"""Unit tests for transports.udp.async_client module."""

import asyncio
import socket

import pytest
from unittest.mock import Mock

from connload.transports.udp.async_client import AsyncUDPClient


@pytest.mark.asyncio
class TestAsyncUDPClient:
    """Test suite for AsyncUDPClient."""

    async def test_initialization(self):
        """Test client initialization."""
        client = AsyncUDPClient("127.0.0.1", 8080)

        assert client.host == "127.0.0.1"
        assert client.port == 8080
        assert client.transport is None

    async def test_send_not_connected(self):
        """Test sending when not connected raises error."""
        client = AsyncUDPClient("127.0.0.1", 8080)

        with pytest.raises(ConnectionError, match="Not connected"):
            await client.send(b"data")

    async def test_connect_uses_remote_addr(self, monkeypatch):
        """Test that dialing fixes the remote address on the endpoint."""
        loop = asyncio.get_running_loop()
        transport = Mock()
        calls = []

        async def fake_endpoint(factory, **kwargs):
            calls.append(kwargs)
            return transport, factory()

        monkeypatch.setattr(loop, "create_datagram_endpoint", fake_endpoint)

        client = AsyncUDPClient("127.0.0.1", 9999)
        await client.connect()
        await client.send(b"msg")
        await client.close()

        assert calls == [{"remote_addr": ("127.0.0.1", 9999)}]
        transport.sendto.assert_called_once_with(b"msg")
        transport.close.assert_called_once()
        assert client.transport is None

    async def test_sends_datagram(self):
        """Test that the payload reaches a real UDP socket."""
        receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        receiver.bind(("127.0.0.1", 0))
        receiver.settimeout(2.0)
        port = receiver.getsockname()[1]

        try:
            async with AsyncUDPClient("127.0.0.1", port) as client:
                await client.send(b"msg")

            data, _ = receiver.recvfrom(1024)
            assert data == b"msg"
        finally:
            receiver.close()

    async def test_close_when_not_connected(self):
        """Test closing when not connected."""
        client = AsyncUDPClient("127.0.0.1", 8080)

        await client.close()  # Should not raise

    async def test_push_sends_and_closes(self):
        """Test the dial, send, close sequence against a real socket."""
        receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        receiver.bind(("127.0.0.1", 0))
        receiver.settimeout(2.0)

        try:
            client = AsyncUDPClient("127.0.0.1", receiver.getsockname()[1])
            await client.push(b"msg")

            assert client.transport is None
            data, _ = receiver.recvfrom(1024)
            assert data == b"msg"
        finally:
            receiver.close()
