"""Tests for the sysmon renderer and command line."""

import io

import pytest
from conftest import NET_DEV_HEADER, write_proc
from rich.console import Console

from sysmon import app as app_module
from sysmon.app import SELECTORS, TableRenderer, build_parser, main
from sysmon.config import MonitorConfig
from sysmon.models import Domain
from sysmon.monitor import RefreshLoop, Sampler, frame_rows


def plain_console() -> tuple[Console, io.StringIO]:
    """Create a wide, non-terminal console writing to a buffer."""
    buffer = io.StringIO()
    return Console(file=buffer, width=240, highlight=False), buffer


class TestTableRenderer:
    """Tests for TableRenderer."""

    @pytest.fixture(autouse=True)
    def capable_terminal(self, monkeypatch):
        """Rich drops cursor control on dumb terminals."""
        monkeypatch.setenv("TERM", "xterm-256color")

    @pytest.mark.parametrize("domain", list(Domain))
    def test_frame_height_matches_frame_rows(self, config, domain):
        """Test the rendered frame takes exactly the rows the loop rewinds."""
        console, buffer = plain_console()
        with Sampler(config) as sampler:
            store = sampler.sample(domain)
            TableRenderer(console).render(domain, store)
            assert len(buffer.getvalue().splitlines()) == frame_rows(domain, store)

    def test_cpu_frame_contents(self, config):
        """Test the cpu frame shows every populated row and the scalars."""
        console, buffer = plain_console()
        with Sampler(config) as sampler:
            TableRenderer(console).render(Domain.CPU, sampler.sample(Domain.CPU))
        output = buffer.getvalue()
        assert "cpu0" in output
        assert "cpu1" in output
        assert "Context Switches" in output
        assert "12345" in output
        assert "cpu2" not in output

    def test_memory_frame_contents(self, config):
        """Test the memory frame shows labels without their colon."""
        console, buffer = plain_console()
        with Sampler(config) as sampler:
            TableRenderer(console).render(Domain.MEMORY, sampler.sample(Domain.MEMORY))
        output = buffer.getvalue()
        assert "MemTotal" in output
        assert "MemTotal:" not in output
        assert "16384000" in output
        assert "kB" not in output

    def test_network_frame_contents(self, config):
        """Test receive and transmit counters land in separate tables."""
        console, buffer = plain_console()
        with Sampler(config) as sampler:
            TableRenderer(console).render(Domain.NETWORK, sampler.sample(Domain.NETWORK))
        output = buffer.getvalue()
        assert "R Multicast" in output
        assert "T Compressed" in output
        assert output.count("eth0:") == 2

    @pytest.mark.parametrize("domain", [Domain.CPU, Domain.NETWORK])
    def test_wide_counters_on_narrow_console(self, tmp_path, domain):
        """Test large counters and labels print in full on an 80 column console."""
        stat = "cpu " + " ".join(["123456789"] * 10) + "\n"
        stat += "".join(f"cpu{n} " + " ".join(["12345678"] * 10) + "\n" for n in range(4))
        stat += "ctxt 9876543210\n"
        net_dev = NET_DEV_HEADER + "eth0: " + " ".join(["1234567890"] * 16) + "\n"
        root = write_proc(tmp_path, stat=stat, net_dev=net_dev)
        config = MonitorConfig(proc_root=str(root), max_cores=4)
        buffer = io.StringIO()
        console = Console(file=buffer, width=80, highlight=False)
        with Sampler(config) as sampler:
            store = sampler.sample(domain)
            TableRenderer(console).render(domain, store)
            rows = frame_rows(domain, store)
        output = buffer.getvalue()
        assert "…" not in output
        assert len(output.splitlines()) == rows
        if domain is Domain.CPU:
            assert "123456789" in output
            assert "12345678 " in output
            assert "cpu0" in output
            assert "cpu3" in output
            assert "9876543210" in output
        else:
            assert output.count("eth0:") == 2
            assert output.count("1234567890") == 16

    def test_rewind_moves_cursor_up(self):
        """Test rewind emits a cursor-up sequence for the given row count."""
        buffer = io.StringIO()
        console = Console(file=buffer, force_terminal=True, width=120)
        TableRenderer(console).rewind(12)
        assert "\x1b[12A" in buffer.getvalue()

    def test_rewind_zero_rows(self):
        """Test rewinding zero rows writes nothing."""
        buffer = io.StringIO()
        console = Console(file=buffer, force_terminal=True, width=120)
        TableRenderer(console).rewind(0)
        assert buffer.getvalue() == ""

    def test_loop_with_real_renderer(self, config):
        """Test the loop drives the renderer through several frames."""
        buffer = io.StringIO()
        console = Console(file=buffer, force_terminal=True, width=240)
        with Sampler(config) as sampler:
            loop = RefreshLoop(
                sampler, TableRenderer(console), Domain.MEMORY, sleep=lambda _: None
            )
            loop.run(max_frames=3)
        output = buffer.getvalue()
        assert output.count("\x1b[15A") == 3
        assert loop.frames == 3


class TestParser:
    """Tests for the command line parser."""

    def test_selectors(self):
        """Test every selector maps to a domain and loop flag."""
        assert SELECTORS["cpu-stats"] == (Domain.CPU, False)
        assert SELECTORS["network-info-loop"] == (Domain.NETWORK, True)
        assert sum(forever for _, forever in SELECTORS.values()) == 3

    def test_options(self):
        """Test options are parsed next to selectors."""
        args = build_parser().parse_args(
            ["--proc-root", "/tmp/p", "--max-cores", "4", "--interval", "0.5", "cpu-stats"]
        )
        assert args.proc_root == "/tmp/p"
        assert args.max_cores == 4
        assert args.interval == 0.5
        assert args.selectors == ["cpu-stats"]


class TestMain:
    """Tests for the main entry point."""

    def test_no_selectors_prints_usage(self, monkeypatch, capsys):
        """Test no selectors prints usage without touching any source."""

        def fail(*args, **kwargs):
            raise AssertionError("sampler must not be created")

        monkeypatch.setattr(app_module, "Sampler", fail)
        assert main([]) == 0
        output = capsys.readouterr().out
        assert "cpu-status-loop" in output
        assert "network-info" in output

    def test_one_shot_selectors(self, proc_root, capsys):
        """Test one-shot selectors render in the order given."""
        assert main(["--proc-root", str(proc_root), "mem-info", "cpu-stats"]) == 0
        output = capsys.readouterr().out
        assert "16384000" in output
        assert "Context Switches" in output
        assert output.index("MemTotal") < output.index("Context Switches")

    def test_unrecognized_selector(self, proc_root, capsys):
        """Test an unknown selector is reported and skipped."""
        assert main(["--proc-root", str(proc_root), "bogus", "network-info"]) == 0
        output = capsys.readouterr().out
        assert "Argument 'bogus' not recognized." in output
        assert "eth0:" in output

    def test_loop_selector_must_be_alone(self, proc_root):
        """Test combining a loop selector with another selector is an error."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--proc-root", str(proc_root), "cpu-status-loop", "mem-info"])
        assert exc_info.value.code == 2

    def test_invalid_config(self, proc_root):
        """Test invalid capacities are usage errors."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--proc-root", str(proc_root), "--max-devices", "0", "network-info"])
        assert exc_info.value.code == 2

    def test_interval_below_minimum(self, proc_root, capsys):
        """Test an interval under the floor is a usage error, not silently raised."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--proc-root", str(proc_root), "--interval", "0.01", "mem-info-loop"])
        assert exc_info.value.code == 2
        assert "interval must be at least 0.1" in capsys.readouterr().err

    def test_loop_uses_configured_interval(self, proc_root, monkeypatch):
        """Test the loop selector runs at the interval given on the command line."""
        intervals: list[float] = []

        class RecordingLoop(RefreshLoop):
            def run(self, max_frames=None) -> None:
                intervals.append(self.interval)
                raise KeyboardInterrupt

        monkeypatch.setattr(app_module, "RefreshLoop", RecordingLoop)
        assert main(["--proc-root", str(proc_root), "--interval", "2.5", "cpu-status-loop"]) == 0
        assert intervals == [2.5]

    def test_missing_source(self, tmp_path, capsys):
        """Test a missing source reports its path and exits with status 1."""
        root = tmp_path / "missing"
        assert main(["--proc-root", str(root), "cpu-stats"]) == 1
        err = capsys.readouterr().err
        assert "ERROR:" in err
        assert str(root / "stat") in err

    def test_loop_selector_runs_until_interrupted(self, proc_root, monkeypatch, capsys):
        """Test a loop selector keeps rendering until interrupted."""
        seen: list[int] = []

        class InterruptedLoop(RefreshLoop):
            def step(self) -> int:
                if len(seen) == 2:
                    raise KeyboardInterrupt
                seen.append(self.frames)
                self._sleep = lambda _: None
                return super().step()

        monkeypatch.setattr(app_module, "RefreshLoop", InterruptedLoop)
        assert main(["--proc-root", str(proc_root), "mem-info-loop"]) == 0
        assert seen == [0, 1]
        assert capsys.readouterr().out.count("MemTotal") == 2
