"""Loopback tests exchanging real UDP datagrams."""

import asyncio

import pytest
import pytest_asyncio

from patchscript import RemoteOperationFailure, Session, TransportFailure
from patchscript._internal.rpc_transports import DatagramTransport, GraphTransport

from .fixtures.mock_server import GraphResponder, UDPGraphServer

pytestmark = pytest.mark.slow


@pytest_asyncio.fixture
async def udp_server():
    responder = GraphResponder()
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        lambda: UDPGraphServer(responder), local_addr=("127.0.0.1", 0)
    )
    host, port = transport.get_extra_info("sockname")[:2]
    yield responder, f"{host}:{port}"
    transport.close()


class TestDatagramTransport:
    """Tests for the UDP transport itself."""

    @pytest.mark.asyncio
    async def test_bind(self):
        transport = await DatagramTransport.bind("127.0.0.1:0", "127.0.0.1:9")
        try:
            assert isinstance(transport, GraphTransport)
            assert transport.local_addr[0] == "127.0.0.1"
            assert transport.local_addr[1] != 0
            assert transport.remote_addr == ("127.0.0.1", 9)
        finally:
            transport.close()

    @pytest.mark.asyncio
    async def test_send_after_close(self):
        transport = await DatagramTransport.bind("127.0.0.1:0", "127.0.0.1:9")
        transport.close()

        assert transport.closed
        with pytest.raises(TransportFailure):
            transport.send(b"{}")

    @pytest.mark.asyncio
    async def test_bind_unavailable_address(self):
        with pytest.raises(TransportFailure):
            await DatagramTransport.bind("203.0.113.1:0", "127.0.0.1:9")


class TestLoopbackSession:
    """A full session against a UDP graph server on loopback."""

    @pytest.mark.asyncio
    async def test_script_round_trips(self, udp_server):
        responder, address = udp_server

        async with await Session.bind(remote_addr=address, request_timeout=2.0) as session:
            await session.execute("out = dac(sine_oscillator(220) * 0.1)\nplay()\nstop()")
            out = session.runtime.globals["out"]

        assert out.id == 4
        assert responder.op_names() == [
            "AddProcessor",
            "AddConstantF32",
            "Connect",
            "AddConstantF32",
            "AddProcessor",
            "Connect",
            "Connect",
            "AddDac",
            "Connect",
            "Play",
            "Stop",
        ]

    @pytest.mark.asyncio
    async def test_remote_failure_over_udp(self, udp_server):
        responder, address = udp_server
        responder.failures["Play"] = "engine offline"

        async with await Session.bind(remote_addr=address, request_timeout=2.0) as session:
            with pytest.raises(RemoteOperationFailure, match="engine offline"):
                await session.play()

    @pytest.mark.asyncio
    async def test_bind_failure(self):
        with pytest.raises(TransportFailure):
            await Session.bind(local_addr="203.0.113.1:0")

    @pytest.mark.asyncio
    async def test_invalid_catalogue(self, udp_server):
        _, address = udp_server

        with pytest.raises(ValueError):
            await Session.bind(remote_addr=address, processors=["Dac"])
