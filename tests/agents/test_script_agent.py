"""Unit tests for agents.script.ScriptAgent through the in-process host."""

import threading
from unittest.mock import MagicMock, patch

import pytest

from script_agent.agents import AgentConfigs, AgentContext, AgentHost, ScriptAgent
from script_agent.core.errors import AgentError
from script_agent.engines.script import (
    ConversionDepthError,
    ScriptCompileError,
    ScriptRuntimeError,
    UnsupportedNativeType,
    clear_program_cache,
)
from script_agent.models import AgentValue

V = AgentValue


@pytest.fixture(autouse=True)
def _clear_cache() -> None:
    clear_program_cache()
    yield
    clear_program_cache()


class Recorder:
    def __init__(self, host: AgentHost) -> None:
        self.outputs: list[tuple[str, str, AgentValue]] = []
        self.errors: list[AgentError] = []
        host.subscribe(lambda ctx, agent_id, port, value: self.outputs.append((agent_id, port, value)))
        host.on_error(lambda ctx, agent_id, err: self.errors.append(err))

    @property
    def values(self) -> list[AgentValue]:
        return [v for _, _, v in self.outputs]


@pytest.fixture
def host() -> AgentHost:
    return AgentHost()


@pytest.fixture
def rec(host: AgentHost) -> Recorder:
    return Recorder(host)


def _agent(host: AgentHost, script: str, agent_id: str = "a1") -> ScriptAgent:
    agent = host.new_agent("ScriptAgent", agent_id, AgentConfigs({"script": script}))
    assert isinstance(agent, ScriptAgent)
    return agent


def _send(host: AgentHost, value: AgentValue, agent_id: str = "a1") -> bool:
    return host.send(agent_id, AgentContext.new(), "value", value)


class TestDefinition:
    def test_ports_and_config(self) -> None:
        d = ScriptAgent.definition
        assert d.inputs == ["value"]
        assert d.outputs == ["value"]
        assert [c.name for c in d.configs] == ["script"]
        assert d.configs[0].type.value == "text"


class TestConstruct:
    def test_empty_script_is_uncompiled(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "")
        assert not agent.is_ready
        assert _send(host, V.integer(1)) is True
        assert rec.outputs == []
        assert rec.errors == []

    def test_no_configs_is_uncompiled(self, host: AgentHost) -> None:
        agent = ScriptAgent(host, "x", "ScriptAgent", None)
        assert agent.program is None

    def test_missing_script_key_is_uncompiled(self, host: AgentHost) -> None:
        agent = host.new_agent("ScriptAgent", "a1", AgentConfigs({}))
        assert not agent.is_ready

    def test_default_configs(self, host: AgentHost) -> None:
        agent = host.new_agent("ScriptAgent", "a1")
        assert agent.configs().get_string("script") == ""
        assert not agent.is_ready

    def test_compile_failure_aborts_construction(self, host: AgentHost) -> None:
        with pytest.raises(ScriptCompileError):
            _agent(host, "1 +")
        with pytest.raises(AgentError, match="not found"):
            host.get_agent("a1")

    def test_valid_script_is_ready(self, host: AgentHost) -> None:
        assert _agent(host, "value").is_ready


class TestProcess:
    def test_identity(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "value")
        value = V.object(
            {"a": V.integer(1), "b": V.array([V.boolean(True), V.string("x")])}
        )
        assert _send(host, value) is True
        assert rec.outputs == [("a1", "value", value)]

    def test_transform(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "value + 1")
        _send(host, V.integer(41))
        assert rec.values == [V.integer(42)]

    def test_statement_script(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "total = sum(value)\n{'total': total, 'n': len(value)}")
        _send(host, V.from_json([1, 2, 3]))
        assert rec.values == [V.from_json({"total": 6, "n": 3})]

    def test_script_without_result_emits_unit(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "x = value")
        _send(host, V.integer(1))
        assert rec.values == [V.unit()]

    def test_opaque_passes_through(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "[value, 1]")
        opaque = V.opaque(object())
        _send(host, opaque)
        out = rec.values[0]
        assert out.payload[0] is opaque
        assert out.payload[1] == V.integer(1)

    def test_runtime_failure_then_recovery(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "value['n'] * 2")
        assert _send(host, V.object({})) is False
        assert rec.outputs == []
        assert len(rec.errors) == 1
        assert isinstance(rec.errors[0], ScriptRuntimeError)
        assert agent.is_ready

        assert _send(host, V.object({"n": V.integer(2)})) is True
        assert rec.values == [V.integer(4)]

    def test_unbound_name_compiles_then_fails(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "undefined_name")
        assert agent.is_ready
        assert _send(host, V.integer(1)) is False
        assert isinstance(rec.errors[0], ScriptRuntimeError)
        assert "undefined_name" in str(rec.errors[0])
        assert rec.outputs == []

    def test_unsupported_result(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "set(value)")
        assert _send(host, V.from_json([1, 2])) is False
        assert isinstance(rec.errors[0], UnsupportedNativeType)
        assert rec.outputs == []
        assert agent.is_ready

    def test_ordering(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "value")
        inputs = [V.integer(1), V.string("two"), V.array([V.integer(3)])]
        for v in inputs:
            _send(host, v)
        assert rec.values == inputs

    def test_direct_process_raises(self, host: AgentHost) -> None:
        agent = _agent(host, "value / 0")
        with pytest.raises(ScriptRuntimeError):
            agent.process(AgentContext.new(), "value", V.integer(1))


class TestConfigsChanged:
    def test_empty_script_disables(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "value")
        assert host.update_configs("a1", AgentConfigs({"script": ""})) is True
        assert not agent.is_ready
        _send(host, V.integer(1))
        assert rec.outputs == []

    def test_new_script_replaces_program(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "value + 1")
        assert host.update_configs("a1", AgentConfigs({"script": "value * 10"})) is True
        assert agent.program.source == "value * 10"
        _send(host, V.integer(4))
        assert rec.values == [V.integer(40)]

    def test_enable_from_uncompiled(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "")
        host.update_configs("a1", AgentConfigs({"script": "value"}))
        assert agent.is_ready
        _send(host, V.boolean(True))
        assert rec.values == [V.boolean(True)]

    def test_compile_failure_disables_by_default(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "value")
        assert host.update_configs("a1", AgentConfigs({"script": "1 +"})) is False
        assert isinstance(rec.errors[0], ScriptCompileError)
        assert not agent.is_ready
        assert _send(host, V.integer(1)) is True
        assert rec.outputs == []

    @patch("script_agent.agents.script.settings")
    def test_compile_failure_keeps_previous_when_configured(
        self, mock_settings: MagicMock, host: AgentHost, rec: Recorder
    ) -> None:
        mock_settings.SCRIPT_KEEP_PROGRAM_ON_COMPILE_ERROR = True
        agent = _agent(host, "value + 1")
        assert host.update_configs("a1", AgentConfigs({"script": "1 +"})) is False
        assert isinstance(rec.errors[0], ScriptCompileError)
        assert agent.is_ready
        _send(host, V.integer(1))
        assert rec.values == [V.integer(2)]

    def test_compile_failure_raised_to_direct_caller(self, host: AgentHost) -> None:
        agent = _agent(host, "value")
        agent.set_configs(AgentConfigs({"script": "def f(  "}))
        with pytest.raises(ScriptCompileError):
            agent.configs_changed()

    def test_non_text_script_is_config_error(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "value")
        assert host.update_configs("a1", AgentConfigs({"script": 42})) is False
        assert "not a string" in str(rec.errors[0])


class TestFailureContainment:
    def test_raise_system_exit_reported(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "raise SystemExit(3)")
        assert _send(host, V.integer(1)) is False
        assert isinstance(rec.errors[0], ScriptRuntimeError)
        assert rec.outputs == []
        assert agent.is_ready

    def test_deeply_nested_source_on_reconfigure(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "value")
        assert host.update_configs("a1", AgentConfigs({"script": "value" + " + 1" * 20000})) is False
        assert isinstance(rec.errors[0], ScriptCompileError)
        assert not agent.is_ready

    def test_deeply_nested_source_on_construct(self, host: AgentHost) -> None:
        with pytest.raises(ScriptCompileError):
            _agent(host, "value" + " + 1" * 20000)

    def test_very_deep_input_reported(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "1")
        value = V.integer(0)
        for _ in range(1500):
            value = V.array([value])
        assert _send(host, value) is False
        assert isinstance(rec.errors[0], ConversionDepthError)
        assert agent.is_ready
        assert _send(host, V.unit()) is True
        assert rec.values == [V.integer(1)]

    def test_identity_at_depth_limit(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "value")
        at_limit = V.integer(0)
        for _ in range(256):
            at_limit = V.array([at_limit])
        assert _send(host, at_limit) is True
        assert len(rec.outputs) == 1

        too_deep = V.array([at_limit])
        assert _send(host, too_deep) is False
        assert isinstance(rec.errors[0], ConversionDepthError)
        assert len(rec.outputs) == 1


class TestConcurrency:
    def _run_with_timeout(self, target, timeout: float = 5.0) -> None:
        t = threading.Thread(target=target, daemon=True)
        t.start()
        t.join(timeout)
        assert not t.is_alive(), "agent blocked while emitting"

    def test_output_fed_back_into_same_agent(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "value + 1")

        def feedback(ctx: AgentContext, agent_id: str, port: str, value: AgentValue) -> None:
            if value.payload < 5:
                host.send(agent_id, ctx, "value", value)

        host.subscribe(feedback)
        self._run_with_timeout(lambda: _send(host, V.integer(0)))
        assert rec.values == [V.integer(n) for n in range(1, 6)]
        assert rec.errors == []

    def test_listener_reconfigures_source_agent(self, host: AgentHost, rec: Recorder) -> None:
        agent = _agent(host, "value + 1")

        def reconfigure(ctx: AgentContext, agent_id: str, port: str, value: AgentValue) -> None:
            host.update_configs(agent_id, AgentConfigs({"script": "value * 100"}))

        host.subscribe(reconfigure)
        self._run_with_timeout(lambda: _send(host, V.integer(1)))
        assert rec.values == [V.integer(2)]
        assert agent.program.source == "value * 100"

    def test_process_and_reconfigure_serialized(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "value + 1000")
        failures: list[int] = []

        def sender(start: int) -> None:
            for i in range(start, start + 50):
                if not _send(host, V.integer(i)):
                    failures.append(i)

        threads = [threading.Thread(target=sender, args=(n * 50,)) for n in range(4)]
        for t in threads:
            t.start()
        for n in range(20):
            script = "value + 1000" if n % 2 else "value + 2000"
            host.update_configs("a1", AgentConfigs({"script": script}))
        for t in threads:
            t.join()

        assert failures == []
        assert rec.errors == []
        assert len(rec.outputs) == 200
        for v in rec.values:
            assert 1000 <= v.payload < 1200 or 2000 <= v.payload < 2200

    def test_per_thread_order_kept(self, host: AgentHost, rec: Recorder) -> None:
        _agent(host, "value")
        _agent(host, "value", agent_id="a2")

        def sender(agent_id: str) -> None:
            for i in range(30):
                _send(host, V.integer(i), agent_id=agent_id)

        threads = [threading.Thread(target=sender, args=(a,)) for a in ("a1", "a2")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for agent_id in ("a1", "a2"):
            seq = [v.payload for a, _, v in rec.outputs if a == agent_id]
            assert seq == list(range(30))
