"""
Command-line driver tests: file feeding, stdin, exit codes and flags.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io
import logging
import signal
import threading
import pytest
import rpn


def feed_stdin(monkeypatch, text: str):
    monkeypatch.setattr(sys, "stdin", io.StringIO(text))


class TestCli:

    def test_stdin_statement(self, monkeypatch, capsys):
        feed_stdin(monkeypatch, "10 6 4 - / p\n")
        assert rpn.main(["-q"]) == 0
        assert capsys.readouterr().out == "5\n"

    def test_state_persists_across_lines(self, monkeypatch, capsys):
        feed_stdin(monkeypatch, ": sq dup * ;\n5 sq p\n")
        assert rpn.main(["-q"]) == 0
        assert capsys.readouterr().out == "25\n"

    def test_help_without_arguments(self, monkeypatch, capsys):
        feed_stdin(monkeypatch, "")
        assert rpn.main([]) == 0
        assert "RPN calculator" in capsys.readouterr().out

    def test_file_then_stdin(self, monkeypatch, capsys, tmp_path):
        lib = tmp_path / "lib.rpn"
        lib.write_text("# library\n: sq dup * ;\n", encoding="utf-8")
        feed_stdin(monkeypatch, "7 sq p\n")
        assert rpn.main(["-q", "-f", str(lib)]) == 0
        assert capsys.readouterr().out == "49\n"

    def test_missing_file(self, monkeypatch, tmp_path):
        feed_stdin(monkeypatch, "")
        assert rpn.main(["-q", "-f", str(tmp_path / "nope.rpn")]) == 1

    def test_quit_in_file(self, monkeypatch, capsys, tmp_path):
        script = tmp_path / "run.rpn"
        script.write_text("2 p\nquit\n3 p\n", encoding="utf-8")
        feed_stdin(monkeypatch, "4 p\n")
        with pytest.raises(SystemExit) as exc:
            rpn.main(["-q", "-f", str(script)])
        assert exc.value.code == 0
        assert capsys.readouterr().out == "2\n"

    def test_errors_do_not_end_session(self, monkeypatch, capsys):
        feed_stdin(monkeypatch, "drop\nfrob\n1 p\n")
        assert rpn.main(["-q"]) == 0
        assert capsys.readouterr().out == "1\n"

    def test_max_steps(self, monkeypatch, capsys):
        feed_stdin(monkeypatch, "1 [ 1 ]\n2 p\n")
        assert rpn.main(["-q", "--max-steps", "50"]) == 0
        assert capsys.readouterr().out == "2\n"

    def test_log_file(self, monkeypatch, tmp_path):
        log_path = tmp_path / "logs" / "rpn.log"
        feed_stdin(monkeypatch, "swap\n")
        rpn.main(["-q", "--log-file", str(log_path)])
        for h in logging.getLogger("rpncalc").handlers:
            h.flush()
        text = log_path.read_text(encoding="utf-8")
        assert "| ERROR   |" in text
        assert "Need 2 operands" in text

    @pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX SIGINT delivery")
    def test_interrupt_stops_loop_in_file(self, monkeypatch, capsys, tmp_path):
        script = tmp_path / "loop.rpn"
        script.write_text("1 [ 1 ]\n2 p\n", encoding="utf-8")
        feed_stdin(monkeypatch, "")
        before = signal.getsignal(signal.SIGINT)
        timer = threading.Timer(0.2, os.kill, args=(os.getpid(), signal.SIGINT))
        timer.start()
        try:
            assert rpn.main(["-q", "--max-steps", "50000000", "-f", str(script)]) == 0
        finally:
            timer.cancel()
        assert capsys.readouterr().out == "2\n"
        assert signal.getsignal(signal.SIGINT) is before

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            rpn.main(["--version"])
        assert exc.value.code == 0
        assert "rpn" in capsys.readouterr().out
