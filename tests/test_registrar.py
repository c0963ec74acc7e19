"""Tests for exposing processors as script procedures."""

import gc

import pytest

from patchscript import InvalidArgument, Session, StaleHandle
from patchscript._internal import rpc_serialization as ops
from patchscript._internal.registrar import Procedure, script_name
from patchscript.config import DEFAULT_PROCESSORS

from .fixtures.mock_server import MockGraphServer


class TestScriptName:
    """Tests for CamelCase to snake_case conversion."""

    @pytest.mark.parametrize(
        "processor,expected",
        [
            ("SineOscillator", "sine_oscillator"),
            ("BlSawOscillator", "bl_saw_oscillator"),
            ("ADSREnvelope", "adsr_envelope"),
            ("Adsr", "adsr"),
            ("PeakLimiter", "peak_limiter"),
            ("Osc2Out", "osc2_out"),
            ("Lowpass-Filter", "lowpass_filter"),
            ("Metro", "metro"),
        ],
    )
    def test_conversion(self, processor, expected):
        assert script_name(processor) == expected


class TestRegistration:
    """Tests for installing procedures into the script namespace."""

    def test_default_catalogue_installed(self, session):
        for processor in DEFAULT_PROCESSORS:
            procedure = session.runtime.globals[script_name(processor)]
            assert isinstance(procedure, Procedure)
            assert procedure.processor == processor
        assert set(session.procedures) == {script_name(p) for p in DEFAULT_PROCESSORS}

    def test_procedure_metadata(self, session):
        procedure = session.procedures["bl_saw_oscillator"]

        assert procedure.__name__ == "bl_saw_oscillator"
        assert "BlSawOscillator" in procedure.__doc__
        assert repr(procedure) == "<procedure bl_saw_oscillator (BlSawOscillator)>"

    def test_custom_catalogue(self):
        session = Session(MockGraphServer(), processors=["Lowpass"])

        assert list(session.procedures) == ["lowpass"]
        assert "sine_oscillator" not in session.runtime.globals

    @pytest.mark.parametrize(
        "processors",
        [
            ["Dac"],
            ["Play"],
            ["Sleep"],
            ["Mixer"],
            ["Sine", "sine"],
            ["2Pole"],
        ],
    )
    def test_collisions_rejected(self, processors):
        """Names that clash with built-ins, each other or Python syntax are rejected."""
        with pytest.raises(ValueError):
            Session(MockGraphServer(), processors=processors)

    def test_mixer_name_free_without_mixer(self):
        session = Session(MockGraphServer(), processors=["Mixer"], mixer=False)

        assert session.procedures["mixer"].processor == "Mixer"


class TestProcedureCalls:
    """Tests for calling procedures from scripts."""

    @pytest.mark.asyncio
    async def test_arguments_feed_inputs_in_order(self, session, server):
        await session.execute("osc = sine_oscillator(220, 0.5)")

        assert server.requests == [
            ops.add_processor("SineOscillator"),
            {"op": "AddConstantF32", "value": 220.0},
            ops.connect(1, 0, 0, 0),
            {"op": "AddConstantF32", "value": 0.5},
            ops.connect(2, 0, 0, 1),
        ]
        assert session.runtime.globals["osc"].id == 0

    @pytest.mark.asyncio
    async def test_sparse_arguments_skip_none(self, session, server):
        await session.execute("osc = sine_oscillator(220, None, 0.5)")

        assert [op["target_input"] for op in server.ops("Connect")] == [{"Index": 0}, {"Index": 2}]

    @pytest.mark.asyncio
    async def test_dense_arguments_reject_none(self):
        server = MockGraphServer()
        session = Session(server, sparse_arguments=False)

        with pytest.raises(InvalidArgument, match="nothing"):
            await session.execute("osc = sine_oscillator(220, None, 0.5)")

        assert server.op_names() == ["AddProcessor", "AddConstantF32", "Connect"]
        session.runtime.shutdown()

    @pytest.mark.asyncio
    async def test_handle_arguments(self, session, server):
        await session.execute("lfo = sine_oscillator(2)\nosc = saw_oscillator(lfo['out'])")

        assert server.ops("Connect")[-1] == ops.connect(0, "out", 2, 0)

    @pytest.mark.asyncio
    async def test_session_procedure_accepts_either_name(self, session, server):
        await session.procedure("sine_oscillator")
        await session.procedure("SineOscillator")
        await session.procedure("Unlisted")

        assert [op["name"] for op in server.ops("AddProcessor")] == [
            "SineOscillator",
            "SineOscillator",
            "Unlisted",
        ]

    def test_outlives_session(self):
        session = Session(MockGraphServer())
        procedure = session.procedures["metro"]
        del session
        gc.collect()

        with pytest.raises(StaleHandle):
            procedure(1)

    @pytest.mark.asyncio
    async def test_closed_session(self):
        server = MockGraphServer()
        session = Session(server)
        procedure = session.procedures["sine_oscillator"]
        await session.close()

        with pytest.raises(StaleHandle, match="closed session"):
            procedure(220)
        assert server.requests == []
