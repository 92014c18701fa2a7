"""
Tests for configure_logging (level calculation and handler installation).
"""

from __future__ import annotations

import logging
import unittest
from unittest import TestCase

from rich.logging import RichHandler

from relay.logs import DEFAULT_LOG_LEVEL, configure_logging


class TestConfigureLogging(TestCase):

    def setUp(self):
        root = logging.getLogger()
        self.addCleanup(setattr, root, "handlers", root.handlers[:])
        self.addCleanup(root.setLevel, root.level)

    def testDefaultLevel(self):
        self.assertEqual(configure_logging(), DEFAULT_LOG_LEVEL)
        self.assertEqual(logging.getLogger().level, logging.WARNING)

    def testVerbosity(self):
        self.assertEqual(configure_logging(verbosity=1), logging.INFO)
        self.assertEqual(configure_logging(verbosity=2), logging.DEBUG)
        self.assertEqual(configure_logging(verbosity=5), logging.DEBUG)

    def testQuietWins(self):
        self.assertEqual(configure_logging(verbosity=2, quiet=True), logging.CRITICAL)

    def testRichHandlerInstalled(self):
        configure_logging(colorful=False)
        handlers = logging.getLogger().handlers
        self.assertEqual(len(handlers), 1)
        self.assertIsInstance(handlers[0], RichHandler)


if __name__ == "__main__":
    unittest.main()
