"""Unit tests for transports.tcp.async_client module."""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock, patch

from connload.transports.tcp.async_client import AsyncTCPClient


def create_mock_writer():
    """Create a properly configured mock writer with sync and async methods."""
    mock_writer = Mock()
    mock_writer.write = Mock()  # Synchronous
    mock_writer.drain = AsyncMock()  # Asynchronous
    mock_writer.close = Mock()  # Synchronous
    mock_writer.wait_closed = AsyncMock()  # Asynchronous
    mock_writer.get_extra_info = Mock(return_value=("127.0.0.1", 40000))
    return mock_writer


@pytest.mark.asyncio
class TestAsyncTCPClient:
    """Test suite for AsyncTCPClient."""

    async def test_initialization(self):
        """Test client initialization."""
        client = AsyncTCPClient("127.0.0.1", 8080)

        assert client.host == "127.0.0.1"
        assert client.port == 8080
        assert client.writer is None
        assert client.local_address is None

    @patch("asyncio.open_connection")
    async def test_connect(self, mock_open_connection):
        """Test dialing the target."""
        mock_writer = create_mock_writer()
        mock_open_connection.return_value = (AsyncMock(), mock_writer)

        client = AsyncTCPClient("127.0.0.1", 8080)
        await client.connect()

        mock_open_connection.assert_called_once_with("127.0.0.1", 8080)
        assert client.writer == mock_writer
        assert client.local_address == ("127.0.0.1", 40000)
        mock_writer.get_extra_info.assert_called_once_with("sockname")

    @patch("asyncio.open_connection")
    async def test_connect_failure_propagates(self, mock_open_connection):
        """Test that dial errors are returned to the caller."""
        mock_open_connection.side_effect = ConnectionRefusedError("refused")

        client = AsyncTCPClient("127.0.0.1", 8080)

        with pytest.raises(ConnectionRefusedError):
            await client.connect()

    async def test_send_not_connected(self):
        """Test sending when not connected raises error."""
        client = AsyncTCPClient("127.0.0.1", 8080)

        with pytest.raises(ConnectionError, match="Not connected"):
            await client.send(b"data")

    @patch("asyncio.open_connection")
    async def test_send(self, mock_open_connection):
        """Test sending data."""
        mock_writer = create_mock_writer()
        mock_open_connection.return_value = (AsyncMock(), mock_writer)

        client = AsyncTCPClient("127.0.0.1", 8080)
        await client.connect()
        await client.send(b"msg")

        mock_writer.write.assert_called_once_with(b"msg")
        mock_writer.drain.assert_called_once()

    @patch("asyncio.open_connection")
    async def test_close(self, mock_open_connection):
        """Test closing connection."""
        mock_writer = create_mock_writer()
        mock_open_connection.return_value = (AsyncMock(), mock_writer)

        client = AsyncTCPClient("127.0.0.1", 8080)
        await client.connect()
        await client.close()

        mock_writer.close.assert_called_once()
        mock_writer.wait_closed.assert_called_once()
        assert client.writer is None

    async def test_close_when_not_connected(self):
        """Test closing when not connected."""
        client = AsyncTCPClient("127.0.0.1", 8080)

        await client.close()  # Should not raise

    @patch("asyncio.open_connection")
    async def test_push(self, mock_open_connection):
        """Test the dial, write, close sequence."""
        mock_writer = create_mock_writer()
        mock_open_connection.return_value = (AsyncMock(), mock_writer)

        client = AsyncTCPClient("127.0.0.1", 8080)
        await client.push(b"msg")

        mock_writer.write.assert_called_once_with(b"msg")
        mock_writer.close.assert_called_once()
        assert client.writer is None

    @patch("asyncio.open_connection")
    async def test_push_closes_after_write_failure(self, mock_open_connection):
        """Test that a failed write still closes the connection."""
        mock_writer = create_mock_writer()
        mock_writer.drain.side_effect = BrokenPipeError("broken")
        mock_open_connection.return_value = (AsyncMock(), mock_writer)

        client = AsyncTCPClient("127.0.0.1", 8080)

        with pytest.raises(BrokenPipeError):
            await client.push(b"msg")

        mock_writer.close.assert_called_once()
        assert client.writer is None

    async def test_push_to_real_listener(self):
        """Test that the payload arrives followed by EOF."""
        received = asyncio.Queue()

        async def on_client(reader, writer):
            received.put_nowait(await reader.read())
            writer.close()

        listener = await asyncio.start_server(on_client, "127.0.0.1", 0)
        port = listener.sockets[0].getsockname()[1]
        try:
            await AsyncTCPClient("127.0.0.1", port).push(b"msg")

            assert await asyncio.wait_for(received.get(), timeout=2.0) == b"msg"
        finally:
            listener.close()
            await listener.wait_closed()
