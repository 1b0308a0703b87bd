"""
End-to-end tests for the command line and the processor.
"""

import io
import os
import re
import tempfile
import unittest
from unittest import mock

from fieldfmt.cli import main
from fieldfmt.errors import InputDecodeError
from fieldfmt.formatter import Formatter
from fieldfmt.processor import Processor
from fieldfmt.scanners import DelimiterScanner, PatternScanner


def run_cli(argv, stdin=b""):
    """Run main() with the given stdin bytes, returning (exit_code, stdout)."""
    fake_stdin = io.TextIOWrapper(io.BytesIO(stdin), encoding="utf-8")
    fake_stdout = io.StringIO()
    with mock.patch("sys.stdin", fake_stdin), mock.patch("sys.stdout", fake_stdout):
        code = main(argv)
    return code, fake_stdout.getvalue()


class TestProcessor(unittest.TestCase):
    """Test the scan-then-format pipeline."""

    def test_line_count_is_preserved(self):
        processor = Processor(
            scanner=PatternScanner(pattern=re.compile(r"(\d+)")),
            formatter=Formatter(template="[{1}]"),
        )
        self.assertEqual(processor.process_text("a1\nb\nc33\n"), "[1]\n[]\n[33]")

    def test_output_is_repeatable(self):
        processor = Processor(
            scanner=DelimiterScanner(delimiter=re.compile(",")),
            formatter=Formatter(template="{2},{1}"),
        )
        text = "a,b\nc,d\n"
        self.assertEqual(processor.process_text(text), processor.process_text(text))

    def test_stream_appends_newline(self):
        processor = Processor(
            scanner=DelimiterScanner(delimiter=re.compile(",")),
            formatter=Formatter(template="{2}"),
        )
        dst = io.StringIO()
        processor.process_stream(io.BytesIO(b"a,b\nc,d\n"), dst)
        self.assertEqual(dst.getvalue(), "b\nd\n")

    def test_undecodable_bytes(self):
        processor = Processor(
            scanner=DelimiterScanner(delimiter=re.compile(",")),
            formatter=Formatter(template="{1}"),
        )
        with self.assertRaises(InputDecodeError):
            processor.process_bytes(b"\xff\xfe\xfa")

    def test_other_encoding(self):
        processor = Processor(
            scanner=DelimiterScanner(delimiter=re.compile(",")),
            formatter=Formatter(template="{2}"),
            encoding="latin-1",
        )
        self.assertEqual(processor.process_bytes(b"a,\xe9"), "é")


class TestCli(unittest.TestCase):
    """Test main() end to end."""

    def test_default_whitespace_split(self):
        code, out = run_cli(["{2} {1}"], b"hello  world\nfoo bar\n")
        self.assertEqual(code, 0)
        self.assertEqual(out, "world hello\nbar foo\n")

    def test_pattern_with_named_groups(self):
        code, out = run_cli(
            ["-p", r"(?P<key>\w+)=(?P<value>\w+)", "{value}<-{key} ({1})"],
            b"a=1\nnothing here\n",
        )
        self.assertEqual(code, 0)
        self.assertEqual(out, "1<-a (a)\n<- ()\n")

    def test_delimiter(self):
        code, out = run_cli(["-d", ",+", "{3}|{2}|{1}"], b"aaa,bbb,,ccc\n")
        self.assertEqual(code, 0)
        self.assertEqual(out, "ccc|bbb|aaa\n")

    def test_jinja_engine(self):
        code, out = run_cli(["-d", ",", "-e", "jinja", "{{ f['1'] | upper }}"], b"x,y\n")
        self.assertEqual(code, 0)
        self.assertEqual(out, "X\n")

    def test_jinja_engine_missing_attribute(self):
        code, out = run_cli(["-e", "jinja", "<{{ missing.x }}{{ f['2'] }}>"], b"a b\n")
        self.assertEqual(code, 0)
        self.assertEqual(out, "<b>\n")

    def test_pattern_and_delimiter_is_config_error(self):
        with self.assertLogs("fieldfmt", level="ERROR") as logs:
            code, out = run_cli(["-p", "a", "-d", ",", "{1}"], b"a,b\n")
        self.assertEqual(code, 2)
        self.assertEqual(out, "")
        self.assertIn("not both", "\n".join(logs.output))

    def test_invalid_regex_is_config_error(self):
        with self.assertLogs("fieldfmt", level="ERROR"):
            code, out = run_cli(["-p", "(", "{1}"], b"a\n")
        self.assertEqual(code, 2)
        self.assertEqual(out, "")

    def test_missing_format_is_config_error(self):
        with self.assertLogs("fieldfmt", level="ERROR"):
            code, out = run_cli([], b"a\n")
        self.assertEqual(code, 2)

    def test_undecodable_input(self):
        with self.assertLogs("fieldfmt", level="ERROR"):
            code, out = run_cli(["{1}"], b"ok\n\xff\xfe\n")
        self.assertEqual(code, 1)
        self.assertEqual(out, "")

    def test_empty_input(self):
        code, out = run_cli(["{1}"], b"")
        self.assertEqual(code, 0)
        self.assertEqual(out, "\n")

    def test_files_and_config(self):
        with tempfile.TemporaryDirectory() as tmp:
            config_path = os.path.join(tmp, "passwd.yaml")
            input_path = os.path.join(tmp, "passwd")
            output_path = os.path.join(tmp, "out.txt")
            with open(config_path, "w", encoding="utf-8") as f:
                f.write("scan:\n  delimiter: ':'\noutput:\n  format: '{1} -> {7}'\n")
            with open(input_path, "wb") as f:
                f.write(b"root:x:0:0:root:/root:/bin/bash\n")
            code, out = run_cli(["-c", config_path, "-i", input_path, "-o", output_path])
            self.assertEqual(code, 0)
            self.assertEqual(out, "")
            with open(output_path, encoding="utf-8") as f:
                self.assertEqual(f.read(), "root -> /bin/bash\n")

    def test_command_line_overrides_config_format(self):
        with tempfile.TemporaryDirectory() as tmp:
            config_path = os.path.join(tmp, "cfg.yaml")
            with open(config_path, "w", encoding="utf-8") as f:
                f.write("scan:\n  delimiter: ':'\noutput:\n  format: '{1}'\n")
            code, out = run_cli(["-c", config_path, "{2}"], b"a:b\n")
        self.assertEqual(code, 0)
        self.assertEqual(out, "b\n")


    def test_undecodable_input_leaves_output_file_alone(self):
        with tempfile.TemporaryDirectory() as tmp:
            input_path = os.path.join(tmp, "in.bin")
            output_path = os.path.join(tmp, "out.txt")
            with open(input_path, "wb") as f:
                f.write(b"\xff\xfe\n")
            with open(output_path, "w", encoding="utf-8") as f:
                f.write("previous\n")
            with self.assertLogs("fieldfmt", level="ERROR"):
                code, out = run_cli(["-i", input_path, "-o", output_path, "{1}"])
            self.assertEqual(code, 1)
            with open(output_path, encoding="utf-8") as f:
                self.assertEqual(f.read(), "previous\n")

    def test_undecodable_input_creates_no_output_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            output_path = os.path.join(tmp, "out.txt")
            with self.assertLogs("fieldfmt", level="ERROR"):
                code, out = run_cli(["-o", output_path, "{1}"], b"\xff\n")
            self.assertEqual(code, 1)
            self.assertFalse(os.path.exists(output_path))
    def test_missing_input_file(self):
        with self.assertLogs("fieldfmt", level="ERROR"):
            code, out = run_cli(["-i", "/nonexistent/input.txt", "{1}"])
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
