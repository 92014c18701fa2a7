"""
Console module behavioral tests (colors, help text, listings, prompts).

Scope
- Validate color resolution, including host palette overrides.
- Validate help normalization and rendering.
- Validate table/list rendering and line input.

Conventions
- Test method names follow CamelCase per project convention.
- Output is captured by redirecting sys.stdout/sys.stderr.
"""

from __future__ import annotations

import contextlib
import io
import sys
import unittest
from unittest import TestCase, mock

from relay import console


class TestColors(TestCase):
    """Behavioral tests for style() and colorize()."""

    def testKnownColor(self):
        self.assertEqual(console.style("light-green"), "bold bright_green")

    def testRawStyleFallsThrough(self):
        self.assertEqual(console.style("italic magenta"), "italic magenta")

    def testNormalIsUnstyled(self):
        self.assertEqual(console.style("normal"), "")

    def testHostOverrides(self):
        with mock.patch.object(sys.modules["__main__"], "__styles__", {"red": "bold red"}, create=True):
            self.assertEqual(console.style("red"), "bold red")

    def testColorize(self):
        text = console.colorize("x", "red")
        self.assertEqual(text.plain, "x")
        self.assertEqual(str(text.style), "red")
        self.assertEqual(str(console.colorize("x", "red", colorful=False).style), "")


class TestHelpText(TestCase):
    """Behavioral tests for normalize_help() and render_help()."""

    def testNormalizeHelp(self):
        text = """
            usage: app <command>

            commands:
                deploy
        """
        self.assertEqual(console.normalize_help(text), "usage: app <command>\n\ncommands:\n    deploy")

    def testNormalizeEmptyHelp(self):
        self.assertEqual(console.normalize_help(""), "")

    def testRenderHelpStreams(self):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            console.render_help("usage: a")
            console.render_help("usage: b", stderr=True)
        self.assertEqual(out.getvalue(), "usage: a\n")
        self.assertEqual(err.getvalue(), "usage: b\n")

    def testRenderFancyHelp(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            console.render_help("usage: app", title="app", fancy=True)
        self.assertIn("usage: app", out.getvalue())
        self.assertIn("app", out.getvalue().splitlines()[0])


class TestListings(TestCase):
    """Behavioral tests for render_table() and render_list()."""

    def testTableAcceptsGenerators(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            console.render_table((row for row in [("a", 1), ("bb", 22)]))
        self.assertEqual([line.split() for line in out.getvalue().splitlines()], [["a", "1"], ["bb", "22"]])

    def testListAlignsKeys(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            console.render_list({"a": "1", "long-key": "2"})
        first, second = out.getvalue().splitlines()
        self.assertEqual(first.index("1"), second.index("2"))

    def testListRequiresMapping(self):
        with self.assertRaises(TypeError):
            console.render_list([("a", "1")])


class TestInput(TestCase):
    """Behavioral tests for read_input() and is_affirmative()."""

    def testReadInputTrims(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out), mock.patch("builtins.input", return_value="  value  "):
            self.assertEqual(console.read_input("  name?  "), "value")
        self.assertEqual(out.getvalue().strip(), "name?")

    def testReadInputWithoutPrompt(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out), mock.patch("builtins.input", return_value="x"):
            self.assertEqual(console.read_input(), "x")
        self.assertEqual(out.getvalue(), "")

    def testReadInputAtEndOfInput(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out), mock.patch("builtins.input", side_effect=EOFError):
            self.assertEqual(console.read_input("name?"), "")
        self.assertFalse(console.is_affirmative(""))

    def testAffirmatives(self):
        for answer in ("1", "yes", "y", "ok"):
            self.assertTrue(console.is_affirmative(answer))
        for answer in ("", "no", "Yes", "OK", "true"):
            self.assertFalse(console.is_affirmative(answer))


if __name__ == "__main__":
    unittest.main()
