"""Tests for NodeRef/OutputRef handles.

Indexing and repr are purely local; replace and staleness go through a
session wired to the in-process server.
"""

import weakref

import pytest

from patchscript import InvalidIndex, NodeRef, OutputRef, StaleHandle
from patchscript.interfaces import GraphSource, SupportsGraphArithmetic, SupportsOutputIndexing


def make_node(session, node=5):
    return NodeRef(weakref.ref(session), node)


class TestNodeRefContract:
    """Tests for NodeRef identity and output selection."""

    def test_stores_id(self, session):
        """NodeRef exposes the server-assigned id."""
        node = make_node(session, 42)

        assert node.id == 42
        assert node.node == 42
        assert node.selector == 0

    def test_string_ids_kept(self, session):
        """Opaque string ids are kept as given."""
        node = make_node(session, "osc-1")

        assert node.id == "osc-1"

    def test_repr(self, session):
        """NodeRef has informative repr."""
        assert repr(make_node(session, 7)) == "<NodeRef id=7>"

    def test_index_by_position(self, session):
        """node[i] names output i of the same node."""
        out = make_node(session, 3)[2]

        assert isinstance(out, OutputRef)
        assert out.node == 3
        assert out.selector == 2

    def test_index_by_name(self, session):
        """node["name"] names an output by name."""
        out = make_node(session, 3)["gate"]

        assert out.node == 3
        assert out.selector == "gate"
        assert repr(out) == "<OutputRef node=3 output='gate'>"

    def test_index_with_numpy_integer(self, session):
        """Integral types other than int are accepted."""
        np = pytest.importorskip("numpy")

        out = make_node(session)[np.int64(1)]

        assert out.selector == 1
        assert type(out.selector) is int

    def test_indexing_sends_nothing(self, session, server):
        """Selecting outputs never contacts the server."""
        node = make_node(session)
        node[0]
        node["out"]

        assert server.requests == []

    @pytest.mark.parametrize("key", [True, -1, 1.5, None, (0,), [0]])
    def test_invalid_index(self, session, key):
        """Booleans, negative integers and non-int/str keys are rejected."""
        with pytest.raises(InvalidIndex):
            make_node(session)[key]

    def test_invalid_index_is_type_error(self, session):
        """InvalidIndex is also a TypeError for plain Python callers."""
        with pytest.raises(TypeError):
            make_node(session)[2.0]

    def test_not_iterable(self, session):
        """A handle is not a sequence even though it supports indexing."""
        with pytest.raises(TypeError):
            list(make_node(session))

    def test_output_refs_are_not_indexable(self, session):
        """Only nodes select outputs."""
        with pytest.raises(TypeError):
            make_node(session)[0][0]


class TestHandleProtocols:
    """Handles satisfy the public structural protocols."""

    def test_node_ref_protocols(self, session):
        node = make_node(session)

        assert isinstance(node, GraphSource)
        assert isinstance(node, SupportsGraphArithmetic)
        assert isinstance(node, SupportsOutputIndexing)

    def test_output_ref_protocols(self, session):
        out = make_node(session)["out"]

        assert isinstance(out, GraphSource)
        assert isinstance(out, SupportsGraphArithmetic)
        assert not isinstance(out, SupportsOutputIndexing)


class TestReplace:
    """Tests for node replacement."""

    @pytest.mark.asyncio
    async def test_replace_rebinds_handle(self, session, server):
        """The handle takes the id the server returns for ReplaceNode."""
        sine = await session.procedure("SineOscillator")
        saw = await session.procedure("SawOscillator")

        result = await sine.replace_node(saw)

        assert server.ops("ReplaceNode") == [{"op": "ReplaceNode", "target": 0, "replacement": 1}]
        assert sine.id == 1001
        assert result.id == 1001

    @pytest.mark.asyncio
    async def test_earlier_output_refs_keep_old_id(self, session):
        """Output references taken before a replace still point at the old node."""
        sine = await session.procedure("SineOscillator")
        out = sine["out"]
        saw = await session.procedure("SawOscillator")

        await sine.replace_node(saw)

        assert out.node == 0

    @pytest.mark.asyncio
    async def test_replace_with_literal(self, session, server):
        """A literal replacement becomes a constant node first."""
        sine = await session.procedure("SineOscillator")

        await sine.replace_node(0.5)

        assert server.op_names() == ["AddProcessor", "AddConstantF32", "ReplaceNode"]
        assert sine.id == 1001


class TestStaleness:
    """Handles fail fast once their session is gone."""

    @pytest.mark.asyncio
    async def test_closed_session(self, session, server):
        node = await session.procedure("SineOscillator")
        await session.close()

        with pytest.raises(StaleHandle):
            node.session
        with pytest.raises(StaleHandle):
            await node.add(1)
        assert server.op_names() == ["AddProcessor"]

    @pytest.mark.asyncio
    async def test_indexing_still_local_after_close(self, session):
        """Output selection needs no session."""
        node = await session.procedure("SineOscillator")
        await session.close()

        assert node["out"].node == node.id
