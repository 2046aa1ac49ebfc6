from __future__ import annotations

import io
import itertools

import orjson
import pytest

from conftest import RecordingSink, make_record
from logfacade.config import LoggerConfig
from logfacade.exceptions import SinkConstructionError
from logfacade.levels import Level
from logfacade.sinks import (
    ConsoleSink,
    NullSink,
    RotatingFileSink,
    SinkResult,
    UdpSink,
    build_file_sink,
    build_udp_sink,
)

RECORD_LEVELS = [level for level in Level if level is not Level.OFF]


class TestLevelFilter:
    """A sink at level L accepts R iff R.level >= L"""

    @pytest.mark.parametrize(("sink_level", "record_level"), list(itertools.product(Level, RECORD_LEVELS)))
    def test_should_log_matches_ordering(self, sink_level, record_level) -> None:
        sink = RecordingSink(level=sink_level)
        assert sink.should_log(record_level) is (record_level >= sink_level)

    def test_set_level_updates_filter(self) -> None:
        sink = RecordingSink(level=Level.TRACE)
        sink.set_level("error")
        assert sink.level is Level.ERROR
        assert not sink.should_log(Level.WARNING)

    def test_null_sink_filters_everything(self) -> None:
        sink = NullSink()
        sink.set_level(Level.TRACE)
        assert sink.level is Level.OFF
        assert not any(sink.should_log(level) for level in Level)


class TestConsoleSink:
    """Console output"""

    def test_writes_rendered_record(self) -> None:
        stream = io.StringIO()
        sink = ConsoleSink(stream=stream, pattern="[%l] %v")
        sink.emit(make_record("ready"))
        sink.flush()
        assert stream.getvalue() == "[info] ready\n"

    def test_color_is_off_for_non_terminals(self) -> None:
        stream = io.StringIO()
        ConsoleSink(stream=stream, pattern="%l").emit(make_record(level=Level.ERROR))
        assert "\033[" not in stream.getvalue()

    def test_color_can_be_forced(self) -> None:
        stream = io.StringIO()
        ConsoleSink(stream=stream, pattern="%l", color=True).emit(make_record(level=Level.ERROR))
        assert stream.getvalue().startswith("\033[")

    def test_set_pattern_replaces_formatter(self) -> None:
        stream = io.StringIO()
        sink = ConsoleSink(stream=stream, pattern="%v")
        sink.set_pattern("<%n> %v")
        sink.emit(make_record("ready", logger="svc"))
        assert stream.getvalue() == "<svc> ready\n"

    def test_defaults_to_stdout(self, capsys) -> None:
        sink = ConsoleSink(pattern="%v")
        sink.emit(make_record("to stdout"))
        sink.flush()
        assert capsys.readouterr().out == "to stdout\n"


class TestUdpSinkConstruction:
    """Validation of the UDP destination"""

    @pytest.mark.parametrize(("host", "port"), [("", 514), ("127.0.0.1", 0), ("127.0.0.1", 70000), ("127.0.0.1", -1)])
    def test_invalid_destination_is_rejected(self, host, port) -> None:
        with pytest.raises(SinkConstructionError) as excinfo:
            UdpSink(host, port)
        assert excinfo.value.code == "SINK_CONSTRUCTION_FAILED"
        assert excinfo.value.sink == "network"

    def test_unknown_wire_format_is_rejected(self) -> None:
        with pytest.raises(SinkConstructionError):
            UdpSink("127.0.0.1", 514, wire_format="xml")

    def test_socket_is_created_lazily(self) -> None:
        sink = UdpSink("127.0.0.1", 514)
        assert sink._socket is None
        sink.close()

    def test_flush_is_a_no_op(self) -> None:
        sink = UdpSink("127.0.0.1", 514)
        sink.flush()
        assert sink._socket is None


class TestUdpEncoding:
    """Datagram payloads"""

    def test_json_payload_shape(self) -> None:
        sink = UdpSink("127.0.0.1", 514, pattern="%v")
        payload = sink.encode(make_record("hello", Level.INFO, "test"))

        assert not payload.endswith(b"\n")
        data = orjson.loads(payload)
        assert list(data) == ["time", "level", "logger", "message"]
        assert data["level"] == "info"
        assert data["logger"] == "test"
        assert data["message"] == "hello"

    def test_json_message_uses_pattern(self) -> None:
        sink = UdpSink("127.0.0.1", 514, pattern="[%n] %v")
        data = orjson.loads(sink.encode(make_record("hello", logger="svc")))
        assert data["message"] == "[svc] hello"

    def test_plain_payload_is_rendered_text(self) -> None:
        sink = UdpSink("127.0.0.1", 514, pattern="[%l] %v", wire_format="plain")
        assert sink.encode(make_record("hello", Level.WARNING)) == b"[warning] hello"


class TestSinkResult:
    """Explicit results at the construction boundary"""

    def test_success_carries_sink(self, tmp_path) -> None:
        result = build_file_sink(LoggerConfig(mode="file", file_path=str(tmp_path / "app.log")))
        assert result.ok
        assert isinstance(result.sink, RotatingFileSink)
        assert result.error is None
        result.sink.close()

    def test_failure_carries_error(self) -> None:
        result = build_udp_sink(LoggerConfig(mode="network", network_ip="", network_port=514))
        assert not result.ok
        assert result.sink is None
        assert isinstance(result.error, SinkConstructionError)

    def test_other_exceptions_propagate(self) -> None:
        def broken() -> NullSink:
            raise RuntimeError("unexpected")

        with pytest.raises(RuntimeError):
            SinkResult.build(broken)
