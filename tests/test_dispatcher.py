import io
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from nativecode.dispatcher import COMMANDS, join_arguments, main, process_command, register_command, run_persistent, run_single
from nativecode.models import FAILURE, TERMINATION_MESSAGE


ROOT = Path(__file__).resolve().parents[1]


class DispatcherTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "file.bin"
        self.path.write_bytes(bytes([10, 20, 30, 40, 50, 60]))

    def test_lookup_command_scenarios(self):
        self.assertEqual(30, process_command(f"tablelookup {self.path} 2 1 0"))
        self.assertEqual(60, process_command(f"tablelookup {self.path} 2 2 1"))
        self.assertEqual(FAILURE, process_command(f"tablelookup {self.path} 2 3 0"))

    def test_unrecognized_commands_fail(self):
        for line in ("", "\n", "bogus command", "tablelookup", "tablelookup\n", f"tablelookup\t{self.path} 2 1 0", f" tablelookup {self.path} 2 1 0", f"TABLELOOKUP {self.path} 2 1 0", f"tablelookupx {self.path} 2 1 0"):
            self.assertEqual(FAILURE, process_command(line), line)

    def test_too_few_numbers_fail(self):
        self.assertEqual(FAILURE, process_command(f"tablelookup {self.path} 2 1"))
        self.assertEqual(FAILURE, process_command(f"tablelookup {self.path} 2 one 0"))

    def test_registered_handler_receives_tail_verbatim(self):
        received = []

        @register_command("echo")
        def echo(parameters):
            received.append(parameters)
            return 7

        self.addCleanup(COMMANDS.pop, "echo")
        self.assertEqual(7, process_command("echo  a b\n"))
        self.assertEqual([" a b\n"], received)

    def test_misbehaving_handlers_answer_failure(self):
        @register_command("broken")
        def broken(parameters):
            raise RuntimeError("boom")

        @register_command("wide")
        def wide(parameters):
            return 256

        self.addCleanup(COMMANDS.pop, "broken")
        self.addCleanup(COMMANDS.pop, "wide")
        with self.assertLogs("nativecode.dispatcher", level="ERROR"):
            self.assertEqual(FAILURE, process_command("broken x"))
        with self.assertLogs("nativecode.dispatcher", level="ERROR"):
            self.assertEqual(FAILURE, process_command("wide x"))

    def test_register_rejects_keyword_with_space(self):
        with self.assertRaises(ValueError):
            register_command("table lookup")

    def test_join_arguments(self):
        self.assertEqual("tablelookup f 2 1 0", join_arguments(["tablelookup", "f", "2", "1", "0"]))
        self.assertEqual("", join_arguments([]))

    def test_run_single(self):
        self.assertEqual(30, run_single(["tablelookup", str(self.path), "2", "1", "0"]))
        self.assertEqual(FAILURE, run_single(["bogus"]))
        self.assertEqual(50, main(["tablelookup", str(self.path), "2", "2", "0"]))


class PersistentModeTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "file.bin"
        self.path.write_bytes(bytes([10, 20, 30, 40, 50, 60]))

    def test_one_line_per_command_then_termination(self):
        stdin = io.StringIO(f"tablelookup {self.path} 2 0 0\nbogus command\n")
        stdout = io.StringIO()
        self.assertEqual(0, run_persistent(stdin, stdout))
        self.assertEqual(["10", "255", TERMINATION_MESSAGE], stdout.getvalue().splitlines())

    def test_failures_do_not_stop_the_loop(self):
        lines = [
            f"tablelookup {self.path} 2 3 0",
            "",
            f"tablelookup {self.path}missing 1 0 0",
            f"tablelookup {self.path} 2 2 1",
        ]
        stdin = io.StringIO("\n".join(lines))
        stdout = io.StringIO()
        self.assertEqual(0, run_persistent(stdin, stdout))
        self.assertEqual(["255", "255", "255", "60", TERMINATION_MESSAGE], stdout.getvalue().splitlines())

    def test_undecodable_line_answers_failure_and_loop_continues(self):
        raw = b"tablelookup /nowhere/\xff.bin 1 0 0\n" + f"tablelookup {self.path} 2 2 1\n".encode()
        stdin = io.TextIOWrapper(io.BytesIO(raw), encoding="utf-8", errors="surrogateescape")
        stdout = io.StringIO()
        self.assertEqual(0, run_persistent(stdin, stdout))
        self.assertEqual(["255", "60", TERMINATION_MESSAGE], stdout.getvalue().splitlines())

    def test_empty_input_only_terminates(self):
        stdout = io.StringIO()
        self.assertEqual(0, run_persistent(io.StringIO(""), stdout))
        self.assertEqual(f"{TERMINATION_MESSAGE}\n", stdout.getvalue())

    def test_each_result_is_flushed(self):
        class CountingStream(io.StringIO):
            flushes = 0

            def flush(self):
                self.flushes += 1
                super().flush()

        stdout = CountingStream()
        run_persistent(io.StringIO("a\nb\nc\n"), stdout)
        self.assertGreaterEqual(stdout.flushes, 3)


class ProcessTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "file.bin"
        self.path.write_bytes(bytes([10, 20, 30, 40, 50, 60]))

    def _run(self, *args, stdin=""):
        return subprocess.run(
            [sys.executable, "-m", "nativecode", *args],
            cwd=ROOT,
            input=stdin,
            capture_output=True,
            text=True,
            timeout=60,
        )

    def test_exit_status_carries_result(self):
        self.assertEqual(30, self._run("tablelookup", str(self.path), "2", "1", "0").returncode)
        self.assertEqual(FAILURE, self._run("tablelookup", str(self.path), "2", "3", "0").returncode)

    def _run_bytes(self, stdin):
        return subprocess.run(
            [sys.executable, "-m", "nativecode"],
            cwd=ROOT,
            input=stdin,
            capture_output=True,
            env=dict(os.environ, PYTHONIOENCODING="utf-8"),
            timeout=60,
        )

    def test_pipe_mode_survives_undecodable_input(self):
        missing = os.path.join(os.fsencode(self._tmp.name), b"\xff-missing.bin")
        stdin = b"tablelookup " + missing + b" 1 0 0\n" + f"tablelookup {self.path} 2 1 0\n".encode()
        completed = self._run_bytes(stdin)
        self.assertEqual(0, completed.returncode)
        self.assertEqual(["255", "30", TERMINATION_MESSAGE], completed.stdout.decode().splitlines())

    @unittest.skipUnless(sys.platform.startswith("linux"), "arbitrary bytes in file names")
    def test_pipe_mode_opens_non_utf8_file_name(self):
        name = os.path.join(os.fsencode(self._tmp.name), b"\xe9t\xe9.bin")
        with open(name, "wb") as handle:
            handle.write(bytes([7, 8, 9]))
        completed = self._run_bytes(b"tablelookup " + name + b" 1 2 0\n")
        self.assertEqual(0, completed.returncode)
        self.assertEqual(["9", TERMINATION_MESSAGE], completed.stdout.decode().splitlines())

    def test_pipe_mode_over_stdin(self):
        completed = self._run(stdin=f"tablelookup {self.path} 2 0 0\nbogus command\n")
        self.assertEqual(0, completed.returncode)
        self.assertEqual(["10", "255", TERMINATION_MESSAGE], completed.stdout.splitlines())


if __name__ == "__main__":
    unittest.main()
